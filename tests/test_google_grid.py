from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import Any

import anyio
import pytest

from sheetgrid import google_grid
from sheetgrid.config import SheetsConfig
from sheetgrid.google_grid import GoogleSheetsGrid, load_credentials
from sheetgrid.grid import GridClient, RangeValues


class _Request:
    def __init__(self, response: dict[str, Any]) -> None:
        self._response = response

    def execute(self) -> dict[str, Any]:
        return self._response


class _Values:
    def __init__(self, service: FakeService) -> None:
        self._service = service

    def get(self, **kwargs: Any) -> _Request:
        return self._service.respond("values.get", kwargs)

    def append(self, **kwargs: Any) -> _Request:
        return self._service.respond("values.append", kwargs)

    def batchUpdate(self, **kwargs: Any) -> _Request:  # noqa: N802
        return self._service.respond("values.batchUpdate", kwargs)

    def update(self, **kwargs: Any) -> _Request:
        return self._service.respond("values.update", kwargs)


class _Spreadsheets:
    def __init__(self, service: FakeService) -> None:
        self._service = service

    def values(self) -> _Values:
        return _Values(self._service)

    def get(self, **kwargs: Any) -> _Request:
        return self._service.respond("get", kwargs)


class FakeService:
    """Discovery-style resource tree returning canned payloads."""

    def __init__(self, responses: dict[str, dict[str, Any]]) -> None:
        self.responses = responses
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def spreadsheets(self) -> _Spreadsheets:
        return _Spreadsheets(self)

    def respond(self, method: str, kwargs: dict[str, Any]) -> _Request:
        self.requests.append((method, kwargs))
        return _Request(self.responses.get(method, {}))


def test_google_grid_satisfies_protocol() -> None:
    assert isinstance(GoogleSheetsGrid(FakeService({}), "sid"), GridClient)


def test_get_values_maps_render_and_coerces_cells() -> None:
    service = FakeService(
        {
            "values.get": {
                "range": "'Tasks'!A1:C20",
                "values": [["ID", 3, True], "bad", [{"x": 1}]],
            }
        }
    )
    grid = GoogleSheetsGrid(service, "sid")
    result = anyio.run(
        functools.partial(grid.get_values, "'Tasks'!1:20", render="unformatted")
    )
    assert result.range == "'Tasks'!A1:C20"
    assert result.values == [["ID", 3, True], [], ["{'x': 1}"]]
    method, kwargs = service.requests[0]
    assert method == "values.get"
    assert kwargs == {
        "spreadsheetId": "sid",
        "range": "'Tasks'!1:20",
        "valueRenderOption": "UNFORMATTED_VALUE",
    }


def test_get_values_without_values_key() -> None:
    grid = GoogleSheetsGrid(FakeService({"values.get": {"range": "S!A1:Z20"}}), "sid")
    result = anyio.run(grid.get_values, "S!1:20")
    assert result.values == []


def test_append_values_inserts_rows() -> None:
    service = FakeService(
        {"values.append": {"updates": {"updatedRange": "S!A5:C5", "updatedRows": 1}}}
    )
    grid = GoogleSheetsGrid(service, "sid")
    response = anyio.run(
        functools.partial(
            grid.append_values, "S!A1", [["a", "b"]], value_input_option="RAW"
        )
    )
    assert response.updated_range == "S!A5:C5"
    assert response.updated_rows == 1
    _, kwargs = service.requests[0]
    assert kwargs["insertDataOption"] == "INSERT_ROWS"
    assert kwargs["valueInputOption"] == "RAW"
    assert kwargs["body"] == {"values": [["a", "b"]]}


def test_batch_update_values_sends_all_ranges() -> None:
    service = FakeService(
        {
            "values.batchUpdate": {
                "totalUpdatedCells": 2,
                "responses": [{"updatedRange": "S!B2"}, {"updatedRange": "S!C2"}],
            }
        }
    )
    grid = GoogleSheetsGrid(service, "sid")
    data = [
        RangeValues(range="S!B2", values=[["x"]]),
        RangeValues(range="S!C2", values=[[1]]),
    ]
    response = anyio.run(
        functools.partial(
            grid.batch_update_values, data, value_input_option="USER_ENTERED"
        )
    )
    assert response.updated_cells == 2
    assert response.updated_ranges == ["S!B2", "S!C2"]
    _, kwargs = service.requests[0]
    assert kwargs["body"] == {
        "valueInputOption": "USER_ENTERED",
        "data": [
            {"range": "S!B2", "values": [["x"]]},
            {"range": "S!C2", "values": [[1]]},
        ],
    }


def test_set_values_updates_range() -> None:
    service = FakeService(
        {"values.update": {"updatedRange": "S!A1:B1", "updatedCells": 2}}
    )
    grid = GoogleSheetsGrid(service, "sid")
    response = anyio.run(
        functools.partial(
            grid.set_values, "S!A1:B1", [[1, 2]], value_input_option="RAW"
        )
    )
    assert response.updated_cells == 2
    assert response.updated_range == "S!A1:B1"
    assert service.requests[0][0] == "values.update"


def test_list_sheet_tabs() -> None:
    service = FakeService(
        {
            "get": {
                "sheets": [
                    {"properties": {"title": "Tasks", "sheetId": 0, "index": 0}},
                    {"properties": {"title": "Archive", "sheetId": 907, "index": 1}},
                ]
            }
        }
    )
    grid = GoogleSheetsGrid(service, "sid")
    tabs = anyio.run(grid.list_sheet_tabs)
    assert [(tab.name, tab.sheet_id, tab.index) for tab in tabs] == [
        ("Tasks", 0, 0),
        ("Archive", 907, 1),
    ]
    assert service.requests[0][1]["fields"] == "sheets.properties"


def test_load_credentials_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_credentials(tmp_path / "missing.json")


def test_load_credentials_rejects_unknown_type(tmp_path: Path) -> None:
    path = tmp_path / "creds.json"
    path.write_text(json.dumps({"type": "external_account"}), encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported credentials type"):
        load_credentials(path)


def test_load_credentials_authorized_user(tmp_path: Path) -> None:
    path = tmp_path / "token.json"
    path.write_text(
        json.dumps(
            {
                "type": "authorized_user",
                "client_id": "cid",
                "client_secret": "secret",
                "refresh_token": "refresh",
            }
        ),
        encoding="utf-8",
    )
    credentials = load_credentials(path)
    assert credentials.client_id == "cid"
    assert credentials.refresh_token == "refresh"


def test_build_google_grid_uses_default_credentials(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: dict[str, Any] = {}
    sentinel = object()

    def fake_default(scopes: list[str]) -> tuple[object, str]:
        calls["scopes"] = scopes
        return sentinel, "project"

    def fake_build(
        name: str, version: str, *, credentials: object, cache_discovery: bool
    ) -> FakeService:
        calls["build"] = (name, version, credentials, cache_discovery)
        return FakeService({})

    import google.auth
    import googleapiclient.discovery

    monkeypatch.setattr(google.auth, "default", fake_default)
    monkeypatch.setattr(googleapiclient.discovery, "build", fake_build)

    grid = google_grid.build_google_grid(SheetsConfig(), "sid")
    assert grid.spreadsheet_id == "sid"
    assert calls["scopes"] == google_grid.SCOPES
    assert calls["build"] == ("sheets", "v4", sentinel, False)
