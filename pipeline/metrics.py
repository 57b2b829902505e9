"""
Purchase-order metrics.

Pure functions over a sequence of PurchaseOrderRecord. Nothing is cached;
every call recomputes from the records it is given, and scalar results do
not depend on record order.

  TotalOrders      count(records)
  SumOfBilling     sum(amount)
  FillRate         100 * sum(received) / sum(ordered)        0 if sum(ordered) == 0
  LineFillRate     100 * count(received == ordered) / count  0 if no records
  NonZeroFillRate  100 * count(received > 0) / count         0 if no records
"""
import math
from typing import Optional, Sequence

from models.purchase_order import PurchaseOrderRecord
from models.result import KpiSummary, PoGroup, VendorAnalysis, VendorStats

GROUP_STATUS_ALL      = "all"
GROUP_STATUS_COMPLETE = "complete"
GROUP_STATUS_PENDING  = "pending"
GROUP_STATUSES = (GROUP_STATUS_ALL, GROUP_STATUS_COMPLETE, GROUP_STATUS_PENDING)


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator * 100 / denominator


def total_orders(records: Sequence[PurchaseOrderRecord]) -> int:
    return len(records)


def sum_of_billing(records: Sequence[PurchaseOrderRecord]) -> float:
    # fsum is exactly rounded, so the total is the same for any ordering
    return math.fsum(r.amount for r in records)


def fill_rate(records: Sequence[PurchaseOrderRecord]) -> float:
    ordered = sum(r.ordered_qty for r in records)
    received = sum(r.received_qty for r in records)
    return _ratio(received, ordered)


def unit_receipt_fill_rate(records: Sequence[PurchaseOrderRecord]) -> float:
    """Units received over units ordered; the dashboard's URF card."""
    return fill_rate(records)


def line_fill_rate(records: Sequence[PurchaseOrderRecord]) -> float:
    perfect_lines = sum(1 for r in records if r.received_qty == r.ordered_qty)
    return _ratio(perfect_lines, len(records))


def non_zero_fill_rate(records: Sequence[PurchaseOrderRecord]) -> float:
    non_zero = sum(1 for r in records if r.received_qty > 0)
    return _ratio(non_zero, len(records))


def kpi_summary(records: Sequence[PurchaseOrderRecord]) -> KpiSummary:
    return KpiSummary(
        total_orders=total_orders(records),
        sum_of_billing=sum_of_billing(records),
        fill_rate=fill_rate(records),
        line_fill_rate=line_fill_rate(records),
        non_zero_fill_rate=non_zero_fill_rate(records),
        unit_receipt_fill_rate=unit_receipt_fill_rate(records),
        vendor_count=len(vendor_names(records)),
    )


# ------------------------------------------------------------------
# Vendor views
# ------------------------------------------------------------------

def _by_vendor(records: Sequence[PurchaseOrderRecord]) -> dict[str, list[PurchaseOrderRecord]]:
    groups: dict[str, list[PurchaseOrderRecord]] = {}
    for r in records:
        groups.setdefault(r.vendor, []).append(r)
    return groups


def vendor_names(records: Sequence[PurchaseOrderRecord]) -> list[str]:
    """Unique vendor names, sorted."""
    return sorted({r.vendor for r in records})


def vendor_analysis(records: Sequence[PurchaseOrderRecord]) -> list[VendorAnalysis]:
    """Fill rate and revenue per vendor, in order of first appearance."""
    return [
        VendorAnalysis(
            vendor=vendor,
            fill_rate=fill_rate(vendor_records),
            revenue=sum_of_billing(vendor_records),
        )
        for vendor, vendor_records in _by_vendor(records).items()
    ]


def vendor_stats(records: Sequence[PurchaseOrderRecord], vendor: str) -> VendorStats:
    """Fill rate, line count and fully-received line count for one vendor."""
    vendor_records = [r for r in records if r.vendor == vendor]
    if not vendor_records:
        return VendorStats()
    return VendorStats(
        fill_rate=fill_rate(vendor_records),
        total_pos=len(vendor_records),
        completed_pos=sum(1 for r in vendor_records if r.is_complete),
    )


# ------------------------------------------------------------------
# PO grouping
# ------------------------------------------------------------------

def group_by_po_number(records: Sequence[PurchaseOrderRecord]) -> list[PoGroup]:
    """Collapse line records into one PoGroup per PO number, first-seen order."""
    grouped: dict[str, list[PurchaseOrderRecord]] = {}
    for r in records:
        grouped.setdefault(r.po_number, []).append(r)

    groups = []
    for po_number, items in grouped.items():
        ordered = sum(i.ordered_qty for i in items)
        received = sum(i.received_qty for i in items)
        groups.append(PoGroup(
            po_number=po_number,
            vendor=items[0].vendor,
            items=items,
            total_ordered_qty=ordered,
            total_received_qty=received,
            total_amount=math.fsum(i.amount for i in items),
            is_complete=all(i.is_complete for i in items),
            fill_rate=_ratio(received, ordered),
        ))
    return groups


def filter_groups(
    groups: Sequence[PoGroup],
    search: Optional[str] = None,
    status: str = GROUP_STATUS_ALL,
    vendor: Optional[str] = None,
) -> list[PoGroup]:
    """
    Filter PO groups the way the PO list screen does.

    Args:
        search:  Case-insensitive substring of the PO number or vendor.
        status:  "all", "complete" (every line fully received) or "pending".
        vendor:  Exact vendor name, or None / "all" for every vendor.
    """
    if status not in GROUP_STATUSES:
        raise ValueError(f"Invalid status {status!r}. Must be one of {GROUP_STATUSES}")
    needle = (search or "").lower()

    def keep(g: PoGroup) -> bool:
        if needle and needle not in g.po_number.lower() and needle not in g.vendor.lower():
            return False
        if status == GROUP_STATUS_COMPLETE and not g.is_complete:
            return False
        if status == GROUP_STATUS_PENDING and g.is_complete:
            return False
        if vendor and vendor != GROUP_STATUS_ALL and g.vendor != vendor:
            return False
        return True

    return [g for g in groups if keep(g)]
