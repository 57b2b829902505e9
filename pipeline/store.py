"""
Durable record store.

PersistedStore keeps three independent, append-only collections in memory
and mirrors them to a single named snapshot in the Database after every
mutation:

  purchaseOrders      PurchaseOrderRecord   (confirmed POs)
  openPurchaseOrders  PurchaseOrderRecord   (open POs)
  landingRates        LandingRateRecord

There is no update-in-place and no delete-by-id. Corrections are made by
clear_all() and re-ingestion. The store is an explicit object: construct
it once per process, call rehydrate(), and pass it to whatever needs it.
"""
import json
import logging
from dataclasses import dataclass
from typing import Iterable, Union

from pydantic import BaseModel, ValidationError

from models.landing_rate import LandingRateRecord
from models.purchase_order import PurchaseOrderRecord
from .database import Database

logger = logging.getLogger(__name__)

PURCHASE_ORDERS      = "purchaseOrders"
OPEN_PURCHASE_ORDERS = "openPurchaseOrders"
LANDING_RATES        = "landingRates"

COLLECTION_MODELS: dict[str, type] = {
    PURCHASE_ORDERS:      PurchaseOrderRecord,
    OPEN_PURCHASE_ORDERS: PurchaseOrderRecord,
    LANDING_RATES:        LandingRateRecord,
}

# Fields that must be non-empty for a record to enter each collection
MANDATORY_FIELDS: dict[type, tuple[str, ...]] = {
    PurchaseOrderRecord: ("po_number", "vendor"),
    LandingRateRecord:   ("key", "sku_id"),
}

Record = Union[PurchaseOrderRecord, LandingRateRecord]


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable view of the store at one instant; what metrics read from."""
    purchase_orders: tuple[PurchaseOrderRecord, ...] = ()
    open_purchase_orders: tuple[PurchaseOrderRecord, ...] = ()
    landing_rates: tuple[LandingRateRecord, ...] = ()

    def collection(self, name: str) -> tuple:
        return {
            PURCHASE_ORDERS:      self.purchase_orders,
            OPEN_PURCHASE_ORDERS: self.open_purchase_orders,
            LANDING_RATES:        self.landing_rates,
        }[name]


def _check_collection(name: str) -> type:
    try:
        return COLLECTION_MODELS[name]
    except KeyError:
        raise ValueError(
            f"Unknown collection {name!r}. Must be one of {sorted(COLLECTION_MODELS)}"
        ) from None


class PersistedStore:
    """
    Append-only record collections with a durable snapshot.

    Usage:
        store = PersistedStore(Database(config.db_path), config.store_name)
        store.rehydrate()
        store.extend(PURCHASE_ORDERS, records)
    """

    def __init__(self, db: Database, name: str = "erp-data-storage"):
        self.db = db
        self.name = name
        self._collections: dict[str, list[Record]] = {c: [] for c in COLLECTION_MODELS}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def rehydrate(self) -> None:
        """
        Load the durable snapshot into memory.

        Never raises for missing or damaged state: an absent snapshot, a
        missing collection key, unparseable JSON or a malformed entry each
        degrade to an empty collection (or a skipped entry) with a warning.
        """
        self._collections = {c: [] for c in COLLECTION_MODELS}

        raw = self.db.load_snapshot(self.name)
        if raw is None:
            logger.info("No stored snapshot '%s'; starting with an empty store", self.name)
            return

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Stored snapshot '%s' is not valid JSON (%s); starting empty", self.name, exc)
            return
        if not isinstance(payload, dict):
            logger.warning("Stored snapshot '%s' is not an object; starting empty", self.name)
            return

        for collection, model in COLLECTION_MODELS.items():
            entries = payload.get(collection)
            if entries is None:
                logger.info("Snapshot has no '%s' collection; initialised empty", collection)
                continue
            if not isinstance(entries, list):
                logger.warning("Snapshot collection '%s' is not a list; initialised empty", collection)
                continue
            for position, entry in enumerate(entries):
                try:
                    self._collections[collection].append(model.model_validate(entry))
                except ValidationError as exc:
                    logger.warning(
                        "Skipping malformed %s entry #%d: %s",
                        collection, position, exc.errors()[0].get("msg", exc),
                    )

        logger.info("Store '%s' rehydrated: %s", self.name, self.counts())

    def persist(self) -> None:
        """Write every collection to the durable snapshot, replacing it in full."""
        self._write(self._collections)

    def _write(self, collections: dict[str, list[Record]]) -> None:
        payload = {
            collection: [record.model_dump(mode="json") for record in records]
            for collection, records in collections.items()
        }
        self.db.save_snapshot(self.name, payload)
        logger.debug("Store '%s' persisted: %s", self.name, {c: len(r) for c, r in collections.items()})

    def _commit(self, collections: dict[str, list[Record]]) -> None:
        """Persist the new state, then make it current; a failed write leaves memory untouched."""
        self._write(collections)
        self._collections = collections

    def _with_added(self, collection: str, records: list[Record]) -> dict[str, list[Record]]:
        updated = dict(self._collections)
        updated[collection] = self._collections[collection] + records
        return updated

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append(self, collection: str, record: BaseModel) -> bool:
        """
        Append one record and persist. Returns False (and logs) instead of
        raising when the record is of the wrong type or lacks mandatory fields.
        """
        if not self._accepts(collection, record):
            return False
        self._commit(self._with_added(collection, [record]))
        return True

    def extend(self, collection: str, records: Iterable[BaseModel]) -> int:
        """Append a batch as a single mutation with one persist. Returns the count added."""
        accepted = [r for r in records if self._accepts(collection, r)]
        if not accepted:
            return 0
        self._commit(self._with_added(collection, accepted))
        logger.info("Appended %d records to %s", len(accepted), collection)
        return len(accepted)

    def clear_all(self) -> None:
        """Empty every collection and persist the empty state."""
        self._commit({c: [] for c in COLLECTION_MODELS})
        logger.info("Store '%s' cleared", self.name)

    def _accepts(self, collection: str, record: BaseModel) -> bool:
        model = _check_collection(collection)
        if not isinstance(record, model):
            logger.error(
                "Rejected %s for %s: expected %s",
                type(record).__name__, collection, model.__name__,
            )
            return False
        missing = [
            name for name in MANDATORY_FIELDS[model]
            if not str(getattr(record, name, "") or "").strip()
        ]
        if missing:
            logger.error("Invalid %s data - missing required fields %s: %r", collection, missing, record)
            return False
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def records(self, collection: str) -> tuple:
        _check_collection(collection)
        return tuple(self._collections[collection])

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            purchase_orders=tuple(self._collections[PURCHASE_ORDERS]),
            open_purchase_orders=tuple(self._collections[OPEN_PURCHASE_ORDERS]),
            landing_rates=tuple(self._collections[LANDING_RATES]),
        )

    def counts(self) -> dict[str, int]:
        return {c: len(records) for c, records in self._collections.items()}
