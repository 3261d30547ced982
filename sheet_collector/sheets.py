"""Google Sheets / Drive access using service account credentials."""
from __future__ import annotations
import logging
from typing import Any, List, Optional

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.urls import DRIVE_FILES_API_V3_URL
from gspread.utils import MimeType

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

_REMOTE_ERRORS = (gspread.exceptions.GSpreadException, requests.RequestException, GoogleAuthError)


class SheetsError(RuntimeError):
    """A call to Google Sheets or Drive failed."""


def a1_range(sheet_name: str, cell: str = "A1") -> str:
    return "'{}'!{}".format(sheet_name.replace("'", "''"), cell)


def drive_query_string(value: str) -> str:
    """Escape a value for a double-quoted Drive `q` string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def authorize(credentials_info: dict) -> gspread.Client:
    creds = Credentials.from_service_account_info(credentials_info, scopes=SCOPES)
    return gspread.authorize(creds)


class SheetsClient:
    """One long-lived authorised client for spreadsheet and drive operations."""

    def __init__(self, client: gspread.Client):
        self._client = client

    @classmethod
    def from_credentials(cls, credentials_info: dict) -> "SheetsClient":
        return cls(authorize(credentials_info))

    def find_spreadsheet(self, title: str, folder_id: str) -> Optional[str]:
        """Id of the first spreadsheet named `title` inside `folder_id`, if any."""
        try:
            files = self._client.list_spreadsheet_files(title=drive_query_string(title), folder_id=folder_id)
        except _REMOTE_ERRORS as e:
            raise SheetsError(f"Failed to search for spreadsheet '{title}': {e}") from e

        logger.info("find_spreadsheet | title=%s folder=%s matches=%d", title, folder_id, len(files))
        return files[0]["id"] if files else None

    def create_spreadsheet(self, title: str, folder_id: str) -> str:
        # Client.create re-opens the new file; only the id is needed here.
        payload = {"name": title, "mimeType": MimeType.google_sheets, "parents": [folder_id]}
        try:
            r = self._client.http_client.request(
                "post", DRIVE_FILES_API_V3_URL, json=payload, params={"supportsAllDrives": True}
            )
            spreadsheet_id = r.json().get("id")
        except _REMOTE_ERRORS as e:
            raise SheetsError(f"Failed to create spreadsheet '{title}': {e}") from e

        if not spreadsheet_id:
            raise SheetsError("Failed to create spreadsheet")
        logger.info("create_spreadsheet | title=%s folder=%s id=%s", title, folder_id, spreadsheet_id)
        return spreadsheet_id

    def sheet_names(self, spreadsheet_id: str) -> List[str]:
        try:
            metadata = self._client.http_client.fetch_sheet_metadata(
                spreadsheet_id, params={"fields": "sheets.properties.title"}
            )
        except _REMOTE_ERRORS as e:
            raise SheetsError(f"Failed to read sheets of '{spreadsheet_id}': {e}") from e
        return [s["properties"]["title"] for s in metadata.get("sheets", [])]

    def add_sheet(self, spreadsheet_id: str, title: str) -> None:
        body = {"requests": [{"addSheet": {"properties": {"title": title}}}]}
        try:
            self._client.http_client.batch_update(spreadsheet_id, body)
        except _REMOTE_ERRORS as e:
            raise SheetsError(f"Failed to create sheet '{title}': {e}") from e
        logger.info("add_sheet | spreadsheet=%s title=%s", spreadsheet_id, title)

    def append_rows(self, spreadsheet_id: str, sheet_name: str, rows: List[List[Any]]) -> None:
        """Append rows after the existing content, parsed as if typed by a user."""
        if not rows:
            return
        try:
            self._client.http_client.values_append(
                spreadsheet_id,
                a1_range(sheet_name),
                {"valueInputOption": "USER_ENTERED"},
                {"values": rows},
            )
        except _REMOTE_ERRORS as e:
            raise SheetsError(f"Failed to append data to sheet '{sheet_name}': {e}") from e
        logger.info("append_rows | spreadsheet=%s sheet=%s count=%d", spreadsheet_id, sheet_name, len(rows))
