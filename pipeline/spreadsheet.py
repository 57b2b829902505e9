"""
Spreadsheet adapter.

Binary workbook decoding is delegated to pandas (openpyxl for .xlsx, xlrd
for .xls). The reader yields one dict per row keyed by column header; this
module only normalises that output into the same DecodedTable shape the
delimited-text decoder produces.
"""
import io
import logging
import math
from typing import Any, Mapping, Sequence

import pandas as pd

from .csv_decoder import DecodedTable
from .errors import EmptyFileError, UnreadableFileError

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xls")


def read_workbook_rows(data: bytes, suffix: str) -> list[dict]:
    """
    Read the first sheet of a workbook into row dicts keyed by header.

    Every cell is read as a string; empty cells come back as "".
    """
    suffix = suffix.lower()
    if suffix not in SPREADSHEET_SUFFIXES:
        raise UnreadableFileError(f"Not a spreadsheet file: {suffix}")
    engine = "openpyxl" if suffix == ".xlsx" else "xlrd"
    try:
        frame = pd.read_excel(
            io.BytesIO(data),
            sheet_name=0,
            engine=engine,
            dtype=str,
            keep_default_na=False,
        )
    except Exception as exc:
        raise UnreadableFileError(f"Error reading spreadsheet: {exc}") from exc
    rows = frame.to_dict(orient="records")
    logger.debug("Workbook yielded %d rows, columns: %s", len(rows), list(frame.columns))
    return rows


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def rows_to_table(row_objects: Sequence[Mapping[str, Any]]) -> DecodedTable:
    """
    Normalise reader output into headers + rows of strings.

    The header list is the key set of the first row object; keys that only
    appear on later rows are ignored, and keys missing from a row read as "".
    """
    if not row_objects:
        raise EmptyFileError("File is empty or invalid")
    headers = [str(key).strip() for key in row_objects[0].keys()]
    keys = list(row_objects[0].keys())
    rows = [[_cell_text(obj.get(key)) for key in keys] for obj in row_objects]
    return DecodedTable(headers=headers, rows=rows)
