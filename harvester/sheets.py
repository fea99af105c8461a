"""
Spreadsheet upload of export CSVs (Google Sheets via gspread).

Authenticates with a service-account file named by
GOOGLE_APPLICATION_CREDENTIALS and writes the CSV into one worksheet,
replacing its previous contents.
"""

from __future__ import annotations

import csv
import os
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

import gspread
from google.oauth2.service_account import Credentials


SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.file",
]

MAX_CHUNK_ROWS = 5000
MAX_RETRIES = 5


class SheetsError(RuntimeError):
    """Raised when the spreadsheet upload cannot be performed."""


def _get_client() -> gspread.Client:
    cred_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS", "")
    if not cred_path or not os.path.exists(cred_path):
        raise SheetsError("GOOGLE_APPLICATION_CREDENTIALS is not set or the file does not exist")
    creds = Credentials.from_service_account_file(cred_path, scopes=SCOPES)
    return gspread.authorize(creds)


def _sanitize(value):
    # Cells starting with these characters would be evaluated as formulas
    if isinstance(value, str) and value[:1] in ("=", "+", "-", "@"):
        return "'" + value
    return value


def _is_quota_error(e: Exception) -> bool:
    msg = str(e).lower()
    return ("429" in msg) or ("rate" in msg) or ("quota" in msg)


def _batch_update(
    worksheet: gspread.Worksheet,
    rows: List[List],
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    if not rows:
        return
    start_row = 1
    for i in range(0, len(rows), MAX_CHUNK_ROWS):
        chunk = rows[i : i + MAX_CHUNK_ROWS]
        end_row = start_row + len(chunk) - 1
        end_col = max(len(r) for r in chunk) or 1
        rng = gspread.utils.rowcol_to_a1(start_row, 1) + ":" + gspread.utils.rowcol_to_a1(end_row, end_col)
        retries = 0
        delay = 1.0
        while True:
            try:
                worksheet.update(range_name=rng, values=chunk, value_input_option="USER_ENTERED")
                break
            except Exception as e:
                if not _is_quota_error(e):
                    raise
                retries += 1
                if retries >= MAX_RETRIES:
                    raise
                print(f"Sheets quota hit, retrying in {delay:.0f}s ({retries}/{MAX_RETRIES})")
                sleep(delay)
                delay = min(2 * delay, 16.0)
        start_row = end_row + 1


def read_csv_rows(csv_path: Union[str, Path]) -> List[List[str]]:
    with open(csv_path, newline="", encoding="utf-8") as f:
        return [[_sanitize(v) for v in row] for row in csv.reader(f)]


def upload_csv_to_sheet(
    csv_path: Union[str, Path],
    spreadsheet_id: str,
    sheet_name: Optional[str] = None,
    *,
    client: Optional[gspread.Client] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Replace the contents of one worksheet with the CSV; return the worksheet title.

    The worksheet defaults to the CSV file stem and is created when missing.
    """
    if not spreadsheet_id:
        raise SheetsError("spreadsheet id is required")
    path = Path(csv_path)
    if not path.is_file():
        raise SheetsError(f"CSV file not found: {path}")

    rows = read_csv_rows(path)
    gc = client or _get_client()
    ss = gc.open_by_key(spreadsheet_id)
    title = sheet_name or path.stem
    try:
        ws = ss.worksheet(title)
        ws.clear()
    except gspread.exceptions.WorksheetNotFound:
        ws = ss.add_worksheet(title=title, rows=max(1, len(rows)), cols=max([len(r) for r in rows] or [1]))

    if rows:
        ws.resize(len(rows), max(len(r) for r in rows))
        _batch_update(ws, rows, sleep=sleep)
    print(f"📤 Uploaded {max(0, len(rows) - 1)} rows to sheet '{title}'")
    return title
