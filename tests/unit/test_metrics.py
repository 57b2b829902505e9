"""
Unit tests for purchase-order metrics.
"""
import random

import pytest

from pipeline import metrics


@pytest.mark.unit
class TestHeadlineMetrics:
    """Tests for the KPI card numbers."""

    def test_empty_collection_is_all_zero(self):
        summary = metrics.kpi_summary([])
        assert summary.total_orders == 0
        assert summary.sum_of_billing == 0.0
        assert summary.fill_rate == 0.0
        assert summary.line_fill_rate == 0.0
        assert summary.non_zero_fill_rate == 0.0
        assert summary.vendor_count == 0

    def test_fill_rates(self, make_po):
        records = [
            make_po("PO-1", ordered=100, received=100),
            make_po("PO-2", ordered=50, received=0),
        ]
        assert metrics.fill_rate(records) == pytest.approx(66.67, abs=0.01)
        assert metrics.line_fill_rate(records) == 50.0
        assert metrics.non_zero_fill_rate(records) == 50.0

    def test_zero_ordered_gives_zero_fill_rate(self, make_po):
        records = [make_po(ordered=0, received=0), make_po(ordered=0, received=0)]
        assert metrics.fill_rate(records) == 0.0
        # received == ordered, so every line counts as filled
        assert metrics.line_fill_rate(records) == 100.0

    def test_unit_receipt_fill_rate_matches_fill_rate(self, make_po):
        records = [make_po(ordered=40, received=30), make_po(ordered=10, received=10)]
        assert metrics.unit_receipt_fill_rate(records) == metrics.fill_rate(records) == 80.0

    def test_sum_of_billing(self, make_po):
        records = [make_po(amount=1500.0), make_po(amount=0.1), make_po(amount=0.2)]
        assert metrics.sum_of_billing(records) == pytest.approx(1500.3)
        assert metrics.total_orders(records) == 3

    def test_results_independent_of_order(self, make_po):
        rng = random.Random(7)
        records = [
            make_po(f"PO-{i}", f"V{i % 4}", rng.randint(0, 500), rng.randint(0, 500), rng.random() * 1e4)
            for i in range(200)
        ]
        shuffled = list(records)
        rng.shuffle(shuffled)
        assert metrics.kpi_summary(records) == metrics.kpi_summary(shuffled)


@pytest.mark.unit
class TestVendorViews:

    @pytest.fixture
    def records(self, make_po):
        return [
            make_po("PO-1", "Globex", 100, 50, 200.0),
            make_po("PO-2", "Acme", 10, 10, 100.0),
            make_po("PO-3", "Globex", 100, 100, 300.0),
        ]

    def test_vendor_names_sorted_unique(self, records):
        assert metrics.vendor_names(records) == ["Acme", "Globex"]

    def test_vendor_analysis(self, records):
        analysis = {v.vendor: v for v in metrics.vendor_analysis(records)}
        assert analysis["Globex"].fill_rate == 75.0
        assert analysis["Globex"].revenue == 500.0
        assert analysis["Acme"].fill_rate == 100.0
        assert [v.vendor for v in metrics.vendor_analysis(records)] == ["Globex", "Acme"]

    def test_vendor_stats(self, records):
        stats = metrics.vendor_stats(records, "Globex")
        assert stats.total_pos == 2
        assert stats.completed_pos == 1
        assert stats.fill_rate == 75.0

    def test_vendor_stats_unknown_vendor(self, records):
        stats = metrics.vendor_stats(records, "Nobody")
        assert stats.total_pos == 0
        assert stats.fill_rate == 0.0


@pytest.mark.unit
class TestPoGrouping:

    @pytest.fixture
    def groups(self, make_po):
        return metrics.group_by_po_number([
            make_po("PO-1", "Acme", 10, 10, 100.0, sku_code="A"),
            make_po("PO-2", "Globex", 20, 5, 50.0),
            make_po("PO-1", "Acme", 30, 20, 300.0, sku_code="B"),
        ])

    def test_lines_grouped_by_po_number(self, groups):
        assert [g.po_number for g in groups] == ["PO-1", "PO-2"]
        po1 = groups[0]
        assert len(po1.items) == 2
        assert po1.total_ordered_qty == 40
        assert po1.total_received_qty == 30
        assert po1.total_amount == 400.0
        assert po1.fill_rate == 75.0
        assert po1.is_complete is False

    def test_filter_by_status(self, make_po):
        groups = metrics.group_by_po_number([
            make_po("PO-1", "Acme", 5, 5),
            make_po("PO-2", "Acme", 5, 1),
        ])
        assert [g.po_number for g in metrics.filter_groups(groups, status="complete")] == ["PO-1"]
        assert [g.po_number for g in metrics.filter_groups(groups, status="pending")] == ["PO-2"]
        assert len(metrics.filter_groups(groups)) == 2

    def test_filter_by_search_is_case_insensitive(self, groups):
        assert [g.po_number for g in metrics.filter_groups(groups, search="glob")] == ["PO-2"]
        assert [g.po_number for g in metrics.filter_groups(groups, search="po-1")] == ["PO-1"]

    def test_filter_by_vendor(self, groups):
        assert [g.po_number for g in metrics.filter_groups(groups, vendor="Acme")] == ["PO-1"]
        assert len(metrics.filter_groups(groups, vendor="all")) == 2

    def test_invalid_status_raises(self, groups):
        with pytest.raises(ValueError):
            metrics.filter_groups(groups, status="shipped")
