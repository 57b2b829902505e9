"""
Header resolution module.

Maps the free-form column headers of an uploaded file onto the canonical
fields of a record type. Headers are normalised (trimmed, lower-cased, all
whitespace removed) and each canonical field is tested against its synonym
table:

  exact     equal to a normalised synonym        e.g. "vendorname"
  contains  holds every token of a group         e.g. "vendor" in "vendorcode"

The first header in column order satisfying either test is bound
(first-match-wins, not best-match): "Vendor Code" before "VendorName" binds
"Vendor Code". Columns are not exclusive: one header may bind several
fields if their synonym tables overlap.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from models.landing_rate import LandingRateRecord
from models.purchase_order import PurchaseOrderRecord

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Field kinds understood by the record validator
KIND_STR     = "str"
KIND_INT     = "int"
KIND_DECIMAL = "decimal"


def normalize_header(text: Optional[str]) -> str:
    """Trim, lower-case and strip every whitespace character."""
    if text is None:
        return ""
    return _WHITESPACE.sub("", str(text).strip().lower())


@dataclass(frozen=True)
class FieldSpec:
    """One canonical field slot and the headers that may fill it."""
    name: str                                   # attribute name on the record model
    label: str                                  # header shown in templates / error messages
    kind: str = KIND_STR
    exact: tuple[str, ...] = ()                 # normalised synonyms, exact match
    contains: tuple[tuple[str, ...], ...] = ()  # token groups, all tokens must appear
    mandatory: bool = False
    optional: bool = False                      # empty string → None on the record

    def matches_exact(self, normalized: str) -> bool:
        return normalized in self.exact

    def matches_contains(self, normalized: str) -> bool:
        return any(all(token in normalized for token in group) for group in self.contains)


@dataclass(frozen=True)
class RecordSchema:
    """Mapping table for one record type: canonical fields in priority order."""
    name: str
    model: type
    fields: tuple[FieldSpec, ...]

    @property
    def mandatory_fields(self) -> list[FieldSpec]:
        return [f for f in self.fields if f.mandatory]

    @property
    def expected_headers(self) -> list[str]:
        """Headers listed in templates and 'no valid records' messages."""
        return [f.label for f in self.fields if not f.optional]


PURCHASE_ORDER_SCHEMA = RecordSchema(
    name="purchase_order",
    model=PurchaseOrderRecord,
    fields=(
        FieldSpec("po_number", "PO Number", exact=("ponumber",),
                  contains=(("po", "number"),), mandatory=True),
        FieldSpec("vendor", "VendorName", exact=("vendorname",),
                  contains=(("vendor",),), mandatory=True),
        FieldSpec("ordered_qty", "OrderedQty", KIND_INT, exact=("orderedqty",),
                  contains=(("ordered", "qty"), ("ordered", "quantity"))),
        FieldSpec("received_qty", "ReceivedQty", KIND_INT, exact=("receivedqty",),
                  contains=(("received", "qty"), ("received", "quantity"))),
        FieldSpec("amount", "PoAmount", KIND_DECIMAL, exact=("poamount",),
                  contains=(("amount",), ("value",))),
        FieldSpec("sku_code", "SkuCode", exact=("skucode",),
                  contains=(("sku", "code"),), optional=True),
        FieldSpec("sku_description", "SkuDescription", exact=("skudescription",),
                  contains=(("sku", "desc"), ("description",)), optional=True),
        FieldSpec("line_value_with_tax", "PoLineValueWithTax", KIND_DECIMAL,
                  exact=("polinevaluewithtax", "linevaluewithtax"),
                  contains=(("value", "tax"),), optional=True),
        FieldSpec("status", "Status", exact=("status", "postatus"), optional=True),
    ),
)

LANDING_RATE_SCHEMA = RecordSchema(
    name="landing_rate",
    model=LandingRateRecord,
    fields=(
        FieldSpec("key", "Key", exact=("key",), mandatory=True),
        FieldSpec("sku_id", "SKU ID", exact=("skuid",),
                  contains=(("sku",),), mandatory=True),
        FieldSpec("product_name", "Product Name", exact=("productname",),
                  contains=(("product",),)),
        FieldSpec("mrp", "MRP", KIND_DECIMAL, exact=("mrp",)),
        FieldSpec("category", "Category", exact=("category",)),
        FieldSpec("cases", "Cases", KIND_INT, exact=("cases",)),
        FieldSpec("merchants", "Merchants", KIND_INT, exact=("merchants",)),
        FieldSpec("landing_rate", "Landing Rate", KIND_DECIMAL, exact=("landingrate",),
                  contains=(("landing",),)),
    ),
)


@dataclass
class HeaderMapping:
    """Result of resolving one header row: field name → column index or None."""
    schema: RecordSchema
    headers: list[str]
    indices: dict[str, Optional[int]] = field(default_factory=dict)

    def index_of(self, field_name: str) -> Optional[int]:
        return self.indices.get(field_name)

    @property
    def unresolved(self) -> list[str]:
        return [name for name, idx in self.indices.items() if idx is None]

    @property
    def unresolved_mandatory(self) -> list[str]:
        return [f.name for f in self.schema.mandatory_fields if self.indices.get(f.name) is None]

    def as_header_dict(self) -> dict[str, Optional[str]]:
        """field name → original header text (None when unresolved)."""
        return {
            name: (self.headers[idx] if idx is not None else None)
            for name, idx in self.indices.items()
        }


class HeaderResolver:
    """
    Resolves a header row against a RecordSchema.

    Usage:
        mapping = HeaderResolver(PURCHASE_ORDER_SCHEMA).resolve(headers)
        idx = mapping.index_of("vendor")
    """

    def __init__(self, schema: RecordSchema):
        self.schema = schema

    def resolve(self, headers: Sequence[str]) -> HeaderMapping:
        normalized = [normalize_header(h) for h in headers]
        mapping = HeaderMapping(schema=self.schema, headers=list(headers))

        for spec in self.schema.fields:
            idx, competing = self._resolve_field(spec, normalized)
            mapping.indices[spec.name] = idx
            if idx is not None and competing:
                logger.warning(
                    "Header '%s' bound to field '%s'; also matched: %s",
                    headers[idx], spec.name, ", ".join(repr(headers[i]) for i in competing),
                )

        logger.debug("Resolved %s headers: %s", self.schema.name, mapping.as_header_dict())
        if mapping.unresolved_mandatory:
            logger.info(
                "Mandatory %s fields without a column: %s",
                self.schema.name, ", ".join(mapping.unresolved_mandatory),
            )
        return mapping

    @staticmethod
    def _resolve_field(spec: FieldSpec, normalized: list[str]) -> tuple[Optional[int], list[int]]:
        """Return (first matching index, later indices that also matched)."""
        hits = [
            i for i, h in enumerate(normalized)
            if h and (spec.matches_exact(h) or spec.matches_contains(h))
        ]
        if not hits:
            return None, []
        return hits[0], hits[1:]
