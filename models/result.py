from pydantic import BaseModel, Field
from typing import Optional, List, Union, Literal
from .purchase_order import PurchaseOrderRecord
from .landing_rate import LandingRateRecord


CollectionName = Literal["purchaseOrders", "openPurchaseOrders", "landingRates"]


class RowRejection(BaseModel):
    """A single data row dropped during validation."""
    row_number: int                         # 1-based, header row excluded
    reason: str                             # Human-readable explanation
    missing_fields: List[str] = Field(default_factory=list)


class IngestResult(BaseModel):
    """
    The complete outcome of ingesting (or previewing) one uploaded file.
    Rejected rows never raise; they are listed here instead.
    """
    # --- Metadata ---
    source_file: str
    record_type: str                        # "purchase_order" | "landing_rate"
    collection: CollectionName
    processed_at: str                       # ISO 8601 datetime

    # --- Header resolution ---
    headers: List[str] = Field(default_factory=list)
    field_mapping: dict = Field(default_factory=dict)   # field -> column header or None
    unresolved_fields: List[str] = Field(default_factory=list)

    # --- Row accounting ---
    total_rows: int = 0                     # data rows after the header
    blank_rows: int = 0                     # rows with every cell empty, skipped
    accepted_count: int = 0
    rejected_count: int = 0
    rejections: List[RowRejection] = Field(default_factory=list)

    records: List[Union[PurchaseOrderRecord, LandingRateRecord]] = Field(default_factory=list)

    def summary(self) -> str:
        return (
            f"{self.accepted_count} accepted, {self.rejected_count} rejected, "
            f"{self.blank_rows} blank of {self.total_rows} rows"
        )


class PoGroup(BaseModel):
    """All line records sharing one PO number, with aggregated totals."""
    po_number: str
    vendor: str                             # vendor of the first line seen
    items: List[PurchaseOrderRecord] = Field(default_factory=list)
    total_ordered_qty: int = 0
    total_received_qty: int = 0
    total_amount: float = 0.0
    is_complete: bool = False
    fill_rate: float = 0.0


class VendorAnalysis(BaseModel):
    vendor: str
    fill_rate: float
    revenue: float


class VendorStats(BaseModel):
    fill_rate: float = 0.0
    total_pos: int = 0
    completed_pos: int = 0


class KpiSummary(BaseModel):
    """Headline numbers shown on the dashboard cards."""
    total_orders: int = 0
    sum_of_billing: float = 0.0
    fill_rate: float = 0.0
    line_fill_rate: float = 0.0
    non_zero_fill_rate: float = 0.0
    unit_receipt_fill_rate: float = 0.0
    vendor_count: Optional[int] = None
