from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Literal


POStatus = Literal["completed", "confirmed", "expired", "open"]
PO_STATUSES = ("completed", "confirmed", "expired", "open")


class PurchaseOrderRecord(BaseModel):
    """
    One purchase-order line as ingested from an uploaded file.

    po_number is not unique: a PO with several SKUs arrives as several
    records sharing the same po_number. Grouping happens at read time.
    """
    model_config = ConfigDict(frozen=True)

    po_number: str = Field(min_length=1)
    vendor: str = Field(min_length=1)
    ordered_qty: int = Field(default=0, ge=0)
    received_qty: int = Field(default=0, ge=0)
    amount: float = Field(default=0.0, ge=0)

    # Optional line-item detail (present in richer PO exports)
    sku_code: Optional[str] = None
    sku_description: Optional[str] = None
    line_value_with_tax: Optional[float] = None
    status: Optional[POStatus] = None

    @property
    def is_complete(self) -> bool:
        """True when the full ordered quantity has been received."""
        return self.received_qty == self.ordered_qty
