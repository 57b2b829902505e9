from .purchase_order import PurchaseOrderRecord, PO_STATUSES
from .landing_rate import LandingRateRecord
from .result import IngestResult, RowRejection, PoGroup, VendorAnalysis, VendorStats, KpiSummary

__all__ = [
    "PurchaseOrderRecord", "PO_STATUSES",
    "LandingRateRecord",
    "IngestResult", "RowRejection", "PoGroup", "VendorAnalysis", "VendorStats", "KpiSummary",
]
