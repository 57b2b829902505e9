"""
Upload error taxonomy.

Every error here is fatal for the upload that raised it and is shown to the
operator. Per-row coercion problems are never raised; they are defaulted and
reported through IngestResult.rejections instead.
"""
from typing import Optional

from models.result import IngestResult


class IngestError(Exception):
    """Base class for errors that abort a single file upload."""


class UnsupportedFileError(IngestError):
    """The file extension is not one of .csv, .xlsx, .xls."""


class UnreadableFileError(IngestError):
    """The file could not be read or decoded."""


class EmptyFileError(IngestError):
    """The file has no header row, or no data rows after the header."""


class NoValidRecordsError(IngestError):
    """Every data row failed the mandatory-field check."""

    def __init__(self, message: str, result: Optional[IngestResult] = None):
        super().__init__(message)
        self.result = result
