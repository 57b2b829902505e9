"""
Main ingestion orchestrator.

Ingestor ties the decoders, header resolution, row validation and the
record store into a single ingest() call:

  1. Decoder           -- .csv through the delimited-text decoder,
                          .xlsx/.xls through the spreadsheet adapter
  2. HeaderResolver    -- once per file, on the header row
  3. RecordValidator   -- once per data row; rejected rows are counted
  4. PersistedStore    -- accepted records appended as one batch
  5. Upload log        -- one history entry per successful ingestion

One parameterised flow serves every upload target (POs, open POs and
landing rates); only the RecordSchema and destination collection differ.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from config import ACCEPTED_SUFFIXES, Config
from models.result import IngestResult
from .csv_decoder import DecodedTable, decode_bytes, decode_text
from .errors import EmptyFileError, NoValidRecordsError, UnreadableFileError, UnsupportedFileError
from .header_resolver import (
    LANDING_RATE_SCHEMA,
    PURCHASE_ORDER_SCHEMA,
    HeaderResolver,
    RecordSchema,
)
from .record_validator import RecordValidator, is_blank_row
from .spreadsheet import read_workbook_rows, rows_to_table
from .store import LANDING_RATES, OPEN_PURCHASE_ORDERS, PURCHASE_ORDERS, PersistedStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadTarget:
    """Where an upload goes and which schema its rows follow."""
    kind: str
    collection: str
    schema: RecordSchema
    label: str


UPLOAD_TARGETS: dict[str, UploadTarget] = {
    "pos":     UploadTarget("pos", PURCHASE_ORDERS, PURCHASE_ORDER_SCHEMA, "POs"),
    "openpos": UploadTarget("openpos", OPEN_PURCHASE_ORDERS, PURCHASE_ORDER_SCHEMA, "Open POs"),
    "landing": UploadTarget("landing", LANDING_RATES, LANDING_RATE_SCHEMA, "Landing Rates"),
}

_SAMPLE_ROWS = {
    "pos": [
        ["PO-001", "Sample Vendor A", "100", "95", "1500.00"],
        ["PO-002", "Sample Vendor B", "200", "200", "3200.00"],
        ["PO-003", "Sample Vendor C", "50", "45", "750.50"],
    ],
    "openpos": [
        ["OPEN-001", "Open Vendor A", "150", "120", "2200.00"],
        ["OPEN-002", "Open Vendor B", "300", "250", "4800.00"],
        ["OPEN-003", "Open Vendor C", "75", "60", "1100.25"],
    ],
    "landing": [
        ["K-001", "SKU-1001", "Basmati Rice 5kg", "650", "Grocery", "12", "4", "540.00"],
        ["K-002", "SKU-1002", "Sunflower Oil 1L", "180", "Grocery", "24", "6", "149.50"],
        ["K-003", "SKU-1003", "Green Tea 100g", "220", "Beverages", "30", "3", "175.00"],
    ],
}


def get_target(kind: str) -> UploadTarget:
    try:
        return UPLOAD_TARGETS[kind]
    except KeyError:
        raise ValueError(f"Unknown upload kind {kind!r}. Must be one of {sorted(UPLOAD_TARGETS)}") from None


def _quote(cell: str) -> str:
    if any(ch in cell for ch in ',"\n\r'):
        return '"' + cell.replace('"', '""') + '"'
    return cell


def sample_csv(kind: str) -> str:
    """Template CSV with the expected headers and three example rows."""
    target = get_target(kind)
    lines = [",".join(_quote(h) for h in target.schema.expected_headers)]
    lines.extend(",".join(_quote(c) for c in row) for row in _SAMPLE_ROWS[kind])
    return "\n".join(lines) + "\n"


class Ingestor:
    """
    Orchestrates decoding, validation and storage for uploaded files.

    Usage:
        ingestor = Ingestor(store, config)
        result = ingestor.ingest("orders.csv", data, "pos")
    """

    def __init__(self, store: PersistedStore, config: Optional[Config] = None):
        self.store = store
        self.config = config or Config()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, filename: str, data: bytes, kind: str) -> IngestResult:
        """
        Decode and validate a file without touching the store.

        Raises UnsupportedFileError, UnreadableFileError, EmptyFileError or
        NoValidRecordsError; per-row problems are reported in the result.
        """
        target = get_target(kind)
        table = self._decode(filename, data)
        if not table.rows:
            raise EmptyFileError(f"No data rows found in {filename} (header row only)")

        mapping = HeaderResolver(target.schema).resolve(table.headers)
        validator = RecordValidator(target.schema, mapping)
        result = IngestResult(
            source_file=filename,
            record_type=target.schema.name,
            collection=target.collection,
            processed_at=datetime.now(timezone.utc).isoformat(),
            headers=table.headers,
            field_mapping=mapping.as_header_dict(),
            unresolved_fields=mapping.unresolved,
            total_rows=len(table.rows),
        )

        for row_number, row in enumerate(table.rows, start=1):
            if is_blank_row(row):
                result.blank_rows += 1
                continue
            record, rejection = validator.validate(row, row_number)
            if record is not None:
                result.records.append(record)
                continue
            result.rejected_count += 1
            if len(result.rejections) < self.config.max_rejections_reported:
                result.rejections.append(rejection)
        result.accepted_count = len(result.records)

        logger.info("Parsed %s for %s: %s", filename, target.label, result.summary())

        if result.accepted_count == 0:
            if result.rejected_count == 0:
                raise EmptyFileError(f"No data rows found in {filename} (all rows blank)")
            raise NoValidRecordsError(self._no_valid_records_message(target), result)

        return result

    def ingest(self, filename: str, data: bytes, kind: str) -> IngestResult:
        """Parse a file and append its accepted records to the store."""
        target = get_target(kind)
        result = self.parse(filename, data, kind)
        added = self.store.extend(target.collection, result.records)
        if added != result.accepted_count:
            # The store re-checks mandatory fields; anything it drops is no longer accepted
            logger.error(
                "Store accepted %d of %d validated records from %s",
                added, result.accepted_count, filename,
            )
            result.rejected_count += result.accepted_count - added
            result.accepted_count = added

        self.store.db.log_upload(
            source_file=filename,
            collection=target.collection,
            accepted_count=result.accepted_count,
            rejected_count=result.rejected_count,
            detail={
                "blank_rows": result.blank_rows,
                "unresolved_fields": result.unresolved_fields,
            },
        )
        logger.info("Successfully uploaded %d records to %s", result.accepted_count, target.collection)
        return result

    def ingest_path(self, path: str | Path, kind: str) -> IngestResult:
        """Read a file from disk and ingest it."""
        return self.ingest(Path(path).name, self._read_path(path), kind)

    def preview(self, filename: str, data: bytes, kind: str, limit: Optional[int] = None) -> IngestResult:
        """Parse a file and keep only the first *limit* accepted records."""
        result = self.parse(filename, data, kind)
        limit = self.config.preview_rows if limit is None else limit
        result.records = result.records[:limit]
        return result

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def _decode(self, filename: str, data: bytes) -> DecodedTable:
        suffix = Path(filename).suffix.lower()
        if suffix not in ACCEPTED_SUFFIXES:
            raise UnsupportedFileError(
                f"Please upload a valid CSV or Excel file ({', '.join(ACCEPTED_SUFFIXES)}); got '{filename}'"
            )
        if suffix == ".csv":
            text = decode_bytes(data, self.config.csv_encodings)
            return decode_text(text, self.config.csv_delimiter)
        return rows_to_table(read_workbook_rows(data, suffix))

    @staticmethod
    def _read_path(path: str | Path) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as exc:
            raise UnreadableFileError(f"Error reading file: {exc}") from exc

    @staticmethod
    def _no_valid_records_message(target: UploadTarget) -> str:
        mandatory = " and ".join(f.label for f in target.schema.mandatory_fields)
        return (
            "No valid records found in the file. Please check that your file contains "
            f"the required columns: {', '.join(target.schema.expected_headers)}. "
            f"Also ensure that each row has at least a {mandatory}."
        )
