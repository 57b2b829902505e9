from .csv_decoder import DecodedTable, decode_text, decode_bytes
from .header_resolver import HeaderResolver, LANDING_RATE_SCHEMA, PURCHASE_ORDER_SCHEMA
from .record_validator import RecordValidator
from .database import Database
from .store import PersistedStore
from .ingestor import Ingestor
from . import metrics

__all__ = [
    "DecodedTable", "decode_text", "decode_bytes",
    "HeaderResolver", "LANDING_RATE_SCHEMA", "PURCHASE_ORDER_SCHEMA",
    "RecordValidator", "Database", "PersistedStore", "Ingestor", "metrics",
]
