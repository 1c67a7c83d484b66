from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Final, cast

import anyio

from .config import SheetsConfig
from .grid import (
    AppendResponse,
    BatchUpdateResponse,
    CellValue,
    RangeValues,
    SetValuesResponse,
    SheetTab,
    ValueInputOption,
    ValueRange,
    ValueRender,
)

logger = logging.getLogger(__name__)

SCOPES: Final[list[str]] = ["https://www.googleapis.com/auth/spreadsheets"]

_RENDER_OPTIONS: Final[dict[ValueRender, str]] = {
    "formatted": "FORMATTED_VALUE",
    "unformatted": "UNFORMATTED_VALUE",
}


class GoogleSheetsGrid:
    """GridClient backed by the Google Sheets v4 values API.

    The discovery client is blocking, so every request runs in a worker
    thread. Service errors (``HttpError``) are propagated untouched.
    """

    def __init__(self, service: Any, spreadsheet_id: str) -> None:
        self._service = service
        self.spreadsheet_id = spreadsheet_id

    async def get_values(
        self, range_ref: str, *, render: ValueRender = "formatted"
    ) -> ValueRange:
        request = (
            self._service.spreadsheets()
            .values()
            .get(
                spreadsheetId=self.spreadsheet_id,
                range=range_ref,
                valueRenderOption=_RENDER_OPTIONS[render],
            )
        )
        data = await self._execute(request, label=f"get {range_ref}")
        return ValueRange(
            range=str(data.get("range", "")),
            values=_coerce_rows(data.get("values")),
        )

    async def append_values(
        self,
        range_ref: str,
        rows: list[list[CellValue]],
        *,
        value_input_option: ValueInputOption,
    ) -> AppendResponse:
        request = (
            self._service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self.spreadsheet_id,
                range=range_ref,
                valueInputOption=value_input_option,
                insertDataOption="INSERT_ROWS",
                body={"values": rows},
            )
        )
        data = await self._execute(request, label=f"append {range_ref}")
        updates = data.get("updates") or {}
        return AppendResponse(
            updated_range=str(updates.get("updatedRange", "")),
            updated_rows=int(updates.get("updatedRows", 0)),
        )

    async def batch_update_values(
        self,
        data: list[RangeValues],
        *,
        value_input_option: ValueInputOption,
    ) -> BatchUpdateResponse:
        request = (
            self._service.spreadsheets()
            .values()
            .batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={
                    "valueInputOption": value_input_option,
                    "data": [item.model_dump() for item in data],
                },
            )
        )
        payload = await self._execute(request, label=f"batchUpdate x{len(data)}")
        responses = payload.get("responses") or []
        return BatchUpdateResponse(
            updated_cells=int(payload.get("totalUpdatedCells", 0)),
            updated_ranges=[
                str(item.get("updatedRange", ""))
                for item in responses
                if isinstance(item, dict)
            ],
        )

    async def set_values(
        self,
        range_ref: str,
        rows: list[list[CellValue]],
        *,
        value_input_option: ValueInputOption,
    ) -> SetValuesResponse:
        request = (
            self._service.spreadsheets()
            .values()
            .update(
                spreadsheetId=self.spreadsheet_id,
                range=range_ref,
                valueInputOption=value_input_option,
                body={"values": rows},
            )
        )
        data = await self._execute(request, label=f"update {range_ref}")
        return SetValuesResponse(
            updated_range=str(data.get("updatedRange", "")),
            updated_cells=int(data.get("updatedCells", 0)),
        )

    async def list_sheet_tabs(self) -> list[SheetTab]:
        request = self._service.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id, fields="sheets.properties"
        )
        data = await self._execute(request, label="get metadata")
        tabs: list[SheetTab] = []
        for sheet in data.get("sheets") or []:
            props = sheet.get("properties") or {}
            tabs.append(
                SheetTab(
                    name=str(props.get("title", "")),
                    sheet_id=int(props.get("sheetId", 0)),
                    index=int(props.get("index", 0)),
                )
            )
        return tabs

    async def _execute(self, request: Any, *, label: str) -> dict[str, Any]:
        """Execute a discovery request in a worker thread."""
        logger.debug("Sheets API %s (%s)", label, self.spreadsheet_id)
        result = await anyio.to_thread.run_sync(request.execute)
        return cast(dict[str, Any], result or {})


def _coerce_rows(raw: object) -> list[list[CellValue]]:
    """Coerce a JSON values payload into rows of scalar cells."""
    if not isinstance(raw, list):
        return []
    rows: list[list[CellValue]] = []
    for raw_row in raw:
        if not isinstance(raw_row, list):
            rows.append([])
            continue
        rows.append([_coerce_cell(cell) for cell in raw_row])
    return rows


def _coerce_cell(value: object) -> CellValue:
    """Normalize arbitrary JSON value to a scalar cell."""
    if isinstance(value, str | int | float | bool) or value is None:
        return value
    return str(value)


def load_credentials(path: Path) -> Any:
    """Load Google credentials from a service account or authorized user file.

    Args:
        path: JSON credentials file.

    Returns:
        google-auth credentials object.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a recognized credentials document.
    """
    resolved = path.expanduser().resolve()
    if not resolved.is_file():
        raise FileNotFoundError(f"Credentials file not found: {resolved}")
    info = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(info, dict):
        raise ValueError(f"Invalid credentials file: {resolved}")
    cred_type = info.get("type")
    if cred_type == "service_account":
        from google.oauth2 import service_account

        return service_account.Credentials.from_service_account_info(
            info, scopes=SCOPES
        )
    if cred_type == "authorized_user":
        from google.oauth2.credentials import Credentials

        return Credentials.from_authorized_user_info(info, scopes=SCOPES)
    raise ValueError(
        f"Unsupported credentials type {cred_type!r} in {resolved}. "
        "Expected 'service_account' or 'authorized_user'."
    )


def build_google_grid(config: SheetsConfig, spreadsheet_id: str) -> GoogleSheetsGrid:
    """Build a GoogleSheetsGrid for one spreadsheet.

    Uses ``config.credentials_path`` when set, otherwise application default
    credentials.
    """
    from googleapiclient.discovery import build

    if config.credentials_path is not None:
        credentials = load_credentials(config.credentials_path)
    else:
        import google.auth

        credentials, _ = google.auth.default(scopes=SCOPES)
    service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
    return GoogleSheetsGrid(service, spreadsheet_id)
