from __future__ import annotations

from collections.abc import Mapping
import os
from pathlib import Path
import re

from pydantic import BaseModel, Field

from .grid import ValueInputOption

ENV_DEFAULT_SPREADSHEET = "SHEETS_CLI_DEFAULT_SPREADSHEET_ID"
ENV_CREDENTIALS = "SHEETS_CLI_CREDENTIALS"
ENV_GOOGLE_CREDENTIALS = "GOOGLE_APPLICATION_CREDENTIALS"
ENV_VALUE_INPUT = "SHEETS_CLI_VALUE_INPUT"

_SHEETS_URL_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9_-]+)")


class SheetsConfig(BaseModel):
    """Explicit configuration handed to the grid adapter and tool layer."""

    default_spreadsheet_id: str | None = Field(
        default=None, description="Spreadsheet used when a call names none."
    )
    credentials_path: Path | None = Field(
        default=None, description="Service account or authorized user JSON file."
    )
    value_input_option: ValueInputOption = Field(
        default="USER_ENTERED", description="Default value input option for writes."
    )


def load_config(environ: Mapping[str, str] | None = None) -> SheetsConfig:
    """Build a config from environment variables.

    Args:
        environ: Mapping to read instead of ``os.environ``.

    Returns:
        Loaded configuration.
    """
    env = os.environ if environ is None else environ
    credentials = env.get(ENV_CREDENTIALS) or env.get(ENV_GOOGLE_CREDENTIALS)
    value_input = env.get(ENV_VALUE_INPUT, "USER_ENTERED").strip().upper()
    if value_input not in ("USER_ENTERED", "RAW"):
        raise ValueError(
            f"{ENV_VALUE_INPUT} must be USER_ENTERED or RAW, got {value_input!r}."
        )
    return SheetsConfig(
        default_spreadsheet_id=env.get(ENV_DEFAULT_SPREADSHEET) or None,
        credentials_path=Path(credentials) if credentials else None,
        value_input_option=value_input,
    )


def parse_spreadsheet_id(value: str) -> str:
    """Extract the spreadsheet id from a Sheets URL, or return the input."""
    candidate = value.strip()
    if "docs.google.com" in candidate or "/spreadsheets/d/" in candidate:
        match = _SHEETS_URL_RE.search(candidate)
        if match is not None:
            return match.group(1)
    return candidate


def resolve_spreadsheet_id(value: str | None, config: SheetsConfig) -> str:
    """Resolve an explicit id/URL or fall back to the configured default.

    Raises:
        ValueError: If neither is available.
    """
    candidate = value or config.default_spreadsheet_id
    if not candidate:
        raise ValueError(
            "Spreadsheet is required. Pass a spreadsheet id/URL or set "
            f"{ENV_DEFAULT_SPREADSHEET}."
        )
    return parse_spreadsheet_id(candidate)
