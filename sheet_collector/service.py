"""Submission processing service.
Finds or creates the user's spreadsheet, makes sure the category tab exists and appends the records.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .models import Submission
from .sheets import SheetsClient, SheetsError

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIX = "_MainSheet"
SUCCESS_MESSAGE = "Data successfully appended to the sheet"


def spreadsheet_title(username: str) -> str:
    """'jane' -> 'JANE_MainSheet'"""
    return f"{username.upper()}{SPREADSHEET_SUFFIX}"


def extract_headers(records: List[Dict[str, Any]]) -> List[str]:
    return list(records[0].keys())


def records_to_rows(records: List[Dict[str, Any]]) -> List[List[Any]]:
    """
    Each record becomes its values in key order.
    Columns are not remapped: a record whose keys differ from the first
    record's lands misaligned under the header, so we only warn about it.
    """
    headers = extract_headers(records)
    rows = []
    for i, record in enumerate(records):
        if list(record.keys()) != headers:
            logger.warning("record %d keys %s differ from headers %s", i, list(record.keys()), headers)
        rows.append(list(record.values()))
    return rows


class SheetService:
    def __init__(self, client: SheetsClient):
        self.client = client

    def find_or_create_spreadsheet(self, title: str, folder_id: str) -> str:
        # Two concurrent first-time requests can both miss here and create twice.
        existing = self.client.find_spreadsheet(title, folder_id)
        if existing:
            return existing
        return self.client.create_spreadsheet(title, folder_id)

    def ensure_sheet(self, spreadsheet_id: str, sheet_name: str, records: List[Dict[str, Any]]) -> bool:
        """Add the tab and its header row if missing. Returns True when created."""
        if sheet_name in self.client.sheet_names(spreadsheet_id):
            return False

        self.client.add_sheet(spreadsheet_id, sheet_name)
        self.client.append_rows(spreadsheet_id, sheet_name, [extract_headers(records)])
        return True

    def _append(self, spreadsheet_id: str, submission: Submission) -> None:
        created = self.ensure_sheet(spreadsheet_id, submission.image_type, submission.image_data)
        rows = records_to_rows(submission.image_data)
        # no rollback: a failure here leaves a freshly written header in place
        self.client.append_rows(spreadsheet_id, submission.image_type, rows)
        logger.info(
            "appended | spreadsheet=%s sheet=%s rows=%d new_sheet=%s",
            spreadsheet_id, submission.image_type, len(rows), created,
        )

    def process_submission(self, submission: Submission, folder_id: str) -> Dict[str, Any]:
        title = spreadsheet_title(submission.username)
        try:
            spreadsheet_id = self.find_or_create_spreadsheet(title, folder_id)
            self._append(spreadsheet_id, submission)
        except SheetsError as e:
            raise SheetsError(f"Error processing sheet data: {e}") from e

        return {
            "statusCode": 200,
            "message": SUCCESS_MESSAGE,
            "spreadsheetId": spreadsheet_id,
        }

    def append_to_workbook(self, submission: Submission, spreadsheet_id: str) -> Dict[str, Any]:
        """Append into an existing, configured spreadsheet instead of a per-user one."""
        try:
            self._append(spreadsheet_id, submission)
        except SheetsError as e:
            raise SheetsError(f"Error processing workbook data: {e}") from e

        return {
            "statusCode": 200,
            "message": SUCCESS_MESSAGE,
            "spreadsheetId": spreadsheet_id,
        }
