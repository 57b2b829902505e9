"""
Delimited-text decoder.

A two-state scanner (UNQUOTED / QUOTED) that turns raw text into rows of
trimmed string cells:

  UNQUOTED  quote      -> enter QUOTED
            delimiter  -> end the current cell
            line break -> end the current row
            other      -> append to the cell
  QUOTED    ""         -> literal quote, stay QUOTED
            quote      -> back to UNQUOTED
            other      -> append (delimiters and line breaks included)

\\n, \\r\\n and a lone \\r are all line breaks. Whitespace-only lines are
skipped. The first emitted row is the header row.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from .errors import EmptyFileError, UnreadableFileError

logger = logging.getLogger(__name__)

QUOTE = '"'
DEFAULT_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")

_UNQUOTED = 0
_QUOTED = 1


@dataclass
class DecodedTable:
    """Header row plus raw data rows; the shape shared by CSV and spreadsheet input."""
    headers: list[str]
    rows: list[list[str]] = field(default_factory=list)


def iter_rows(text: str, delimiter: str = ",") -> Iterator[list[str]]:
    """Yield each non-blank row of *text* as a list of trimmed cells."""
    if len(delimiter) != 1:
        raise ValueError(f"Delimiter must be a single character, got {delimiter!r}")
    if text.startswith("\ufeff"):
        text = text[1:]

    state = _UNQUOTED
    row: list[str] = []
    cell: list[str] = []
    has_content = False     # any non-whitespace character seen on this row
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if state == _QUOTED:
            if ch == QUOTE:
                if i + 1 < n and text[i + 1] == QUOTE:
                    cell.append(QUOTE)
                    i += 1
                else:
                    state = _UNQUOTED
            else:
                cell.append(ch)

        elif ch == QUOTE:
            state = _QUOTED
            has_content = True

        elif ch == delimiter:
            row.append("".join(cell).strip())
            cell = []
            has_content = True

        elif ch == "\n" or ch == "\r":
            if ch == "\r" and i + 1 < n and text[i + 1] == "\n":
                i += 1
            if has_content:
                row.append("".join(cell).strip())
                yield row
            row, cell, has_content = [], [], False

        else:
            cell.append(ch)
            if not ch.isspace():
                has_content = True

        i += 1

    if state == _QUOTED:
        logger.warning("Unterminated quoted cell at end of input; closing it")
    if has_content:
        row.append("".join(cell).strip())
        yield row


def decode_text(text: str, delimiter: str = ",") -> DecodedTable:
    """
    Split *text* into a header row and data rows.

    Raises EmptyFileError when there is no header row at all. A header with
    no data rows is returned as-is; the ingestor decides whether that is fatal.
    """
    rows = iter_rows(text, delimiter)
    try:
        headers = next(rows)
    except StopIteration:
        raise EmptyFileError("File is empty or invalid") from None
    table = DecodedTable(headers=headers, rows=list(rows))
    logger.debug("Decoded %d headers, %d data rows", len(table.headers), len(table.rows))
    return table


def decode_bytes(data: bytes, encodings: Iterable[str] = DEFAULT_ENCODINGS) -> str:
    """Decode raw file bytes, trying each encoding in order."""
    last_error: Exception | None = None
    for encoding in encodings:
        try:
            return data.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            last_error = exc
            logger.debug("Decoding with %s failed: %s", encoding, exc)
    raise UnreadableFileError(f"Could not decode file as text: {last_error}") from last_error
