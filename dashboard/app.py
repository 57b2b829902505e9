"""
PO Ingestion Dashboard: FastAPI backend.

JSON API over the record store: upload PO / open-PO / landing-rate files,
preview them before committing, and read back the KPI and vendor views the
dashboard cards are built from.

All records live in one SQLite snapshot (output/erp.db by default); the
store is rehydrated from it once, on the first request.

Endpoints
---------
  GET    /api/health                  → liveness check
  GET    /api/stats                   → record counts per collection
  GET    /api/metrics                 → KPI summary (?collection=pos|openpos)
  GET    /api/vendors                 → per-vendor fill rate and revenue
  GET    /api/vendors/{vendor}        → fill rate / line counts for one vendor
  GET    /api/purchase-orders         → PO groups (supports ?search= ?status= ?vendor=)
  GET    /api/open-purchase-orders    → open-PO groups (same filters)
  GET    /api/landing-rates           → landing-rate records
  POST   /api/preview/{kind}          → parse an upload without storing it
  POST   /api/upload/{kind}           → parse an upload and append it to the store
  GET    /api/uploads                 → upload history, newest first
  GET    /api/samples/{kind}          → template CSV for an upload target
  DELETE /api/data                    → clear every collection
"""
import logging
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import PlainTextResponse

from config import Config
from pipeline import metrics
from pipeline.database import Database
from pipeline.errors import IngestError, NoValidRecordsError, UnsupportedFileError
from pipeline.ingestor import UPLOAD_TARGETS, Ingestor, get_target, sample_csv
from pipeline.store import LANDING_RATES, OPEN_PURCHASE_ORDERS, PURCHASE_ORDERS, PersistedStore

logger = logging.getLogger(__name__)

_PO_COLLECTIONS = {"pos": PURCHASE_ORDERS, "openpos": OPEN_PURCHASE_ORDERS}

# ---------------------------------------------------------------------------
# Store (lazy, built on first request so the app imports cleanly before
# the output directory exists)
# ---------------------------------------------------------------------------
_config: Optional[Config] = None
_store: Optional[PersistedStore] = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_store() -> PersistedStore:
    global _store
    if _store is None:
        config = get_config()
        config.ensure_output_dir()
        _store = PersistedStore(Database(config.db_path), config.store_name)
        _store.rehydrate()
    return _store


def get_ingestor() -> Ingestor:
    return Ingestor(get_store(), get_config())


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="PO Ingestion Dashboard", docs_url=None, redoc_url=None)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _check_kind(kind: str) -> None:
    if kind not in UPLOAD_TARGETS:
        raise HTTPException(404, f"Unknown upload kind: {kind}. Must be one of {sorted(UPLOAD_TARGETS)}")


def _po_records(collection: str):
    if collection not in _PO_COLLECTIONS:
        raise HTTPException(400, f"collection must be one of: {sorted(_PO_COLLECTIONS)}")
    return get_store().records(_PO_COLLECTIONS[collection])


def _ingest_error(exc: IngestError) -> HTTPException:
    """Map a file-level ingestion failure onto an HTTP error."""
    if isinstance(exc, UnsupportedFileError):
        return HTTPException(415, str(exc))
    detail: dict = {"message": str(exc)}
    if isinstance(exc, NoValidRecordsError) and exc.result is not None:
        detail["result"] = exc.result.model_dump(mode="json", exclude={"records"})
    return HTTPException(400, detail)


def _po_groups(collection: str, search: Optional[str], status: str, vendor: Optional[str]):
    groups = metrics.group_by_po_number(get_store().records(collection))
    try:
        groups = metrics.filter_groups(groups, search=search, status=status, vendor=vendor)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return [g.model_dump(mode="json") for g in groups]


# ── Routes ───────────────────────────────────────────────────────────────────

@app.get("/api/health")
def health():
    config = get_config()
    return {
        "status":     "ok",
        "db_path":    str(config.db_path),
        "db_exists":  config.db_path.exists(),
        "store_name": config.store_name,
    }


@app.get("/api/stats")
def stats():
    return get_store().counts()


@app.get("/api/metrics")
def kpis(collection: str = Query(default="pos")):
    return metrics.kpi_summary(_po_records(collection)).model_dump()


@app.get("/api/vendors")
def vendors(collection: str = Query(default="pos")):
    return [v.model_dump() for v in metrics.vendor_analysis(_po_records(collection))]


@app.get("/api/vendors/{vendor}")
def vendor_detail(vendor: str, collection: str = Query(default="pos")):
    records = _po_records(collection)
    if vendor not in metrics.vendor_names(records):
        raise HTTPException(404, f"Vendor not found: {vendor}")
    return {"vendor": vendor, **metrics.vendor_stats(records, vendor).model_dump()}


@app.get("/api/purchase-orders")
def purchase_orders(
    search: Optional[str] = Query(default=None),
    status: str = Query(default=metrics.GROUP_STATUS_ALL),
    vendor: Optional[str] = Query(default=None),
):
    return _po_groups(PURCHASE_ORDERS, search, status, vendor)


@app.get("/api/open-purchase-orders")
def open_purchase_orders(
    search: Optional[str] = Query(default=None),
    status: str = Query(default=metrics.GROUP_STATUS_ALL),
    vendor: Optional[str] = Query(default=None),
):
    return _po_groups(OPEN_PURCHASE_ORDERS, search, status, vendor)


@app.get("/api/landing-rates")
def landing_rates(
    limit: int = Query(default=500, ge=0, le=5000),
    offset: int = Query(default=0, ge=0),
):
    records = get_store().records(LANDING_RATES)
    return [r.model_dump(mode="json") for r in records[offset:offset + limit]]


@app.post("/api/preview/{kind}")
async def preview_upload(kind: str, file: UploadFile = File(...), rows: Optional[int] = Query(default=None, ge=0)):
    """Parse an uploaded file and return the column mapping and first rows. Nothing is stored."""
    _check_kind(kind)
    contents = await file.read()
    try:
        result = get_ingestor().preview(file.filename or "", contents, kind, limit=rows)
    except IngestError as e:
        raise _ingest_error(e)
    return result.model_dump(mode="json")


@app.post("/api/upload/{kind}")
async def upload(kind: str, file: UploadFile = File(...)):
    """
    Validate an uploaded CSV / Excel file and append its accepted rows.

    Rows missing a mandatory field are dropped and reported in the response;
    the file as a whole is refused (400) only when nothing survives.
    """
    _check_kind(kind)
    contents = await file.read()
    filename = file.filename or ""
    try:
        result = get_ingestor().ingest(filename, contents, kind)
    except IngestError as e:
        logger.warning("Upload of %s rejected: %s", filename, e)
        raise _ingest_error(e)

    target = get_target(kind)
    return {
        "message": f"Successfully uploaded {result.accepted_count} records to {target.label}",
        "result":  result.model_dump(mode="json", exclude={"records"}),
    }


@app.get("/api/uploads")
def upload_history(
    limit: int = Query(default=50, ge=0, le=500),
    offset: int = Query(default=0, ge=0),
):
    return get_store().db.get_upload_history(limit=limit, offset=offset)


@app.get("/api/samples/{kind}")
def sample(kind: str):
    _check_kind(kind)
    return PlainTextResponse(
        sample_csv(kind),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="sample_{kind}.csv"'},
    )


@app.delete("/api/data")
def clear_data():
    store = get_store()
    store.clear_all()
    return {"cleared": True, "counts": store.counts()}
