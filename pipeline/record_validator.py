"""
Record validation and coercion.

Turns one raw row (list of string cells) into a typed record using the
field → column mapping produced by HeaderResolver:

  String fields   mapped cell, trimmed; "" when unresolved or absent
  Numeric fields  parsed leniently; 0 on failure, never rejects the row
  Mandatory       every mandatory string field must be non-empty, or the
                  row is dropped with a RowRejection
"""
import logging
import math
import re
from typing import Optional, Sequence, Union

from pydantic import BaseModel, ValidationError

from models.purchase_order import PO_STATUSES
from models.result import RowRejection
from .header_resolver import KIND_DECIMAL, KIND_INT, HeaderMapping, RecordSchema

logger = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^\d.\-]")


def parse_number(value: Optional[Union[str, int, float]]) -> Optional[float]:
    """
    Parse a loosely formatted number ("1,500.00", "$95", " 12 ").
    Accounting negatives in parentheses ("(100)") parse as negative.

    Returns None when nothing numeric remains or the result is not finite.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
        return number if math.isfinite(number) else None
    text = str(value).strip()
    negative = len(text) > 2 and text[0] == "(" and text[-1] == ")"
    if negative:
        text = text[1:-1].strip()
    if not text:
        return None
    try:
        number = float(text.replace(",", ""))
    except ValueError:
        cleaned = _NON_NUMERIC.sub("", text)
        try:
            number = float(cleaned)
        except ValueError:
            return None
    if negative:
        number = -abs(number)
    return number if math.isfinite(number) else None


def coerce_decimal(value: Optional[str]) -> float:
    """Non-negative float; unparseable or negative input becomes 0.0."""
    number = parse_number(value)
    if number is None or number < 0:
        return 0.0
    return number


def coerce_int(value: Optional[str]) -> int:
    """Non-negative int, truncated toward zero; unparseable or negative becomes 0."""
    number = parse_number(value)
    if number is None or number < 0:
        return 0
    return int(number)


def _cell(row: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return (row[index] or "").strip()


def is_blank_row(row: Sequence[str]) -> bool:
    return all(not (cell or "").strip() for cell in row)


class RecordValidator:
    """
    Validates and coerces rows for one file.

    Usage:
        validator = RecordValidator(schema, mapping)
        record, rejection = validator.validate(row, row_number)
    """

    def __init__(self, schema: RecordSchema, mapping: HeaderMapping):
        self.schema = schema
        self.mapping = mapping

    def validate(
        self,
        row: Sequence[str],
        row_number: int,
    ) -> tuple[Optional[BaseModel], Optional[RowRejection]]:
        """Return (record, None) for an accepted row or (None, rejection)."""
        values: dict = {}
        missing: list[str] = []

        for spec in self.schema.fields:
            raw = _cell(row, self.mapping.index_of(spec.name))
            if spec.kind == KIND_INT:
                values[spec.name] = coerce_int(raw)
            elif spec.kind == KIND_DECIMAL:
                if spec.optional and not raw:
                    values[spec.name] = None
                else:
                    values[spec.name] = coerce_decimal(raw)
            else:
                if spec.mandatory and not raw:
                    missing.append(spec.name)
                values[spec.name] = (raw or None) if spec.optional else raw

        if "status" in values and values["status"] is not None:
            status = values["status"].lower()
            values["status"] = status if status in PO_STATUSES else None

        if missing:
            rejection = RowRejection(
                row_number=row_number,
                reason=f"Missing required field(s): {', '.join(missing)}",
                missing_fields=missing,
            )
            logger.debug("Row %d rejected: %s", row_number, rejection.reason)
            return None, rejection

        try:
            record = self.schema.model(**values)
        except ValidationError as exc:
            # Coercion keeps every field in range, so this only fires on a schema bug
            logger.error("Row %d failed model validation: %s", row_number, exc)
            return None, RowRejection(row_number=row_number, reason=str(exc))

        return record, None
