from __future__ import annotations

from pathlib import Path

import pytest

from sheetgrid.config import (
    SheetsConfig,
    load_config,
    parse_spreadsheet_id,
    resolve_spreadsheet_id,
)


def test_load_config_defaults() -> None:
    config = load_config({})
    assert config.default_spreadsheet_id is None
    assert config.credentials_path is None
    assert config.value_input_option == "USER_ENTERED"


def test_load_config_reads_environment() -> None:
    config = load_config(
        {
            "SHEETS_CLI_DEFAULT_SPREADSHEET_ID": "abc123",
            "SHEETS_CLI_CREDENTIALS": "/secrets/sa.json",
            "GOOGLE_APPLICATION_CREDENTIALS": "/other.json",
            "SHEETS_CLI_VALUE_INPUT": "raw",
        }
    )
    assert config.default_spreadsheet_id == "abc123"
    assert config.credentials_path == Path("/secrets/sa.json")
    assert config.value_input_option == "RAW"


def test_load_config_falls_back_to_google_credentials() -> None:
    config = load_config({"GOOGLE_APPLICATION_CREDENTIALS": "/adc.json"})
    assert config.credentials_path == Path("/adc.json")


def test_load_config_rejects_unknown_value_input() -> None:
    with pytest.raises(ValueError, match="SHEETS_CLI_VALUE_INPUT"):
        load_config({"SHEETS_CLI_VALUE_INPUT": "PARSED"})


def test_load_config_reads_process_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SHEETS_CLI_DEFAULT_SPREADSHEET_ID", "from-env")
    monkeypatch.delenv("SHEETS_CLI_VALUE_INPUT", raising=False)
    assert load_config().default_spreadsheet_id == "from-env"


def test_parse_spreadsheet_id() -> None:
    url = "https://docs.google.com/spreadsheets/d/1AbC_d-9/edit#gid=0"
    assert parse_spreadsheet_id(url) == "1AbC_d-9"
    assert parse_spreadsheet_id("  1AbC_d-9 ") == "1AbC_d-9"


def test_resolve_spreadsheet_id() -> None:
    config = SheetsConfig(default_spreadsheet_id="fallback")
    assert resolve_spreadsheet_id(None, config) == "fallback"
    assert resolve_spreadsheet_id("explicit", config) == "explicit"
    with pytest.raises(ValueError, match="Spreadsheet is required"):
        resolve_spreadsheet_id(None, SheetsConfig())
