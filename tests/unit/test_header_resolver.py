"""
Unit tests for header resolution.
"""
import logging

import pytest

from pipeline.header_resolver import (
    LANDING_RATE_SCHEMA,
    PURCHASE_ORDER_SCHEMA,
    HeaderResolver,
    normalize_header,
)


@pytest.mark.unit
class TestNormalizeHeader:

    @pytest.mark.parametrize("raw,expected", [
        ("VendorName", "vendorname"),
        ("  Vendor Name ", "vendorname"),
        ("PO\tNumber", "ponumber"),
        ("", ""),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_header(raw) == expected


@pytest.mark.unit
class TestPurchaseOrderHeaders:
    """Tests for resolving PO header rows."""

    @pytest.fixture
    def resolver(self):
        return HeaderResolver(PURCHASE_ORDER_SCHEMA)

    def test_canonical_headers(self, resolver):
        mapping = resolver.resolve(["PO Number", "VendorName", "OrderedQty", "ReceivedQty", "PoAmount"])
        assert mapping.index_of("po_number") == 0
        assert mapping.index_of("vendor") == 1
        assert mapping.index_of("ordered_qty") == 2
        assert mapping.index_of("received_qty") == 3
        assert mapping.index_of("amount") == 4
        assert mapping.unresolved_mandatory == []

    def test_case_and_spacing_ignored(self, resolver):
        mapping = resolver.resolve(["po number", "VENDOR NAME", "Ordered Qty"])
        assert mapping.index_of("po_number") == 0
        assert mapping.index_of("vendor") == 1
        assert mapping.index_of("ordered_qty") == 2

    def test_containment_fallback(self, resolver):
        mapping = resolver.resolve(["Supplier PO Number", "Vendor", "Total Amount (INR)"])
        assert mapping.index_of("po_number") == 0
        assert mapping.index_of("vendor") == 1
        assert mapping.index_of("amount") == 2

    def test_first_matching_column_wins_over_later_exact(self, resolver):
        mapping = resolver.resolve(["PO Number", "Vendor Code", "VendorName"])
        assert mapping.index_of("vendor") == 1

    def test_line_value_ahead_of_amount_feeds_amount(self, resolver):
        mapping = resolver.resolve(["PO Number", "VendorName", "PoLineValueWithTax", "PoAmount"])
        assert mapping.index_of("amount") == 2
        assert mapping.index_of("line_value_with_tax") == 2

    def test_first_column_wins(self, resolver, caplog):
        with caplog.at_level(logging.WARNING, logger="pipeline.header_resolver"):
            mapping = resolver.resolve(["PO Number", "Vendor", "Gross Amount", "Net Amount"])
        assert mapping.index_of("amount") == 2
        assert "Net Amount" in caplog.text

    def test_unresolved_fields_reported(self, resolver):
        mapping = resolver.resolve(["PO Number", "Quantity"])
        assert mapping.index_of("vendor") is None
        assert "vendor" in mapping.unresolved
        assert mapping.unresolved_mandatory == ["vendor"]

    def test_blank_header_never_matches(self, resolver):
        mapping = resolver.resolve(["", "PO Number", "VendorName"])
        assert mapping.index_of("po_number") == 1

    def test_as_header_dict_uses_original_text(self, resolver):
        mapping = resolver.resolve(["  PO Number ", "VendorName"])
        header_dict = mapping.as_header_dict()
        assert header_dict["po_number"] == "  PO Number "
        assert header_dict["amount"] is None

    def test_optional_detail_columns(self, resolver):
        mapping = resolver.resolve(
            ["PO Number", "VendorName", "SkuCode", "SkuDescription", "PoLineValueWithTax", "Status"]
        )
        assert mapping.index_of("sku_code") == 2
        assert mapping.index_of("sku_description") == 3
        assert mapping.index_of("line_value_with_tax") == 4
        assert mapping.index_of("status") == 5


@pytest.mark.unit
class TestLandingRateHeaders:

    def test_canonical_headers(self):
        headers = ["Key", "SKU ID", "Product Name", "MRP", "Category", "Cases", "Merchants", "Landing Rate"]
        mapping = HeaderResolver(LANDING_RATE_SCHEMA).resolve(headers)
        assert mapping.unresolved == []
        assert mapping.index_of("landing_rate") == 7

    def test_loose_headers(self):
        mapping = HeaderResolver(LANDING_RATE_SCHEMA).resolve(["key", "sku", "product", "landing cost"])
        assert mapping.index_of("sku_id") == 1
        assert mapping.index_of("product_name") == 2
        assert mapping.index_of("landing_rate") == 3


@pytest.mark.unit
def test_expected_headers_exclude_optional_fields():
    assert PURCHASE_ORDER_SCHEMA.expected_headers == [
        "PO Number", "VendorName", "OrderedQty", "ReceivedQty", "PoAmount",
    ]
    assert [f.name for f in PURCHASE_ORDER_SCHEMA.mandatory_fields] == ["po_number", "vendor"]


@pytest.mark.unit
def test_landing_rate_sku_binds_first_sku_column():
    mapping = HeaderResolver(LANDING_RATE_SCHEMA).resolve(["Key", "SKU Name", "SKU ID"])
    assert mapping.index_of("sku_id") == 1
