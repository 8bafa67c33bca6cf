"""
retail_insights/validators/schema_registry.py

Static column contracts for each uploadable file type.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from retail_insights.domain.tabular import FileType
from retail_insights.domain.validation import ColumnKind, ColumnRule, ColumnSchema, FileSchema, RuleKind
from retail_insights.errors import SchemaNotFoundError


def _positive(label: str) -> ColumnRule:
    return ColumnRule(kind=RuleKind.POSITIVE, message=f"{label} must be a positive number")


def _non_empty_text(label: str) -> ColumnRule:
    return ColumnRule(kind=RuleKind.MIN_LENGTH, value=1, message=f"{label} cannot be empty")


def _flag(label: str) -> ColumnRule:
    return ColumnRule(kind=RuleKind.ALLOWED_VALUES, value=("0", "1"), message=f"{label} must be 0 or 1")


TRANSACTION_SCHEMA = FileSchema(
    file_type=FileType.TRANSACTION,
    required_columns=(
        ColumnSchema("upc", ColumnKind.ALPHANUMERIC, "Universal product code of the item sold"),
        ColumnSchema("dollar_sales", ColumnKind.NUMBER, "Sales amount for the line item"),
        ColumnSchema("units", ColumnKind.NUMBER, "Number of units sold"),
    ),
    optional_columns=(
        ColumnSchema("time_of_transaction", ColumnKind.STRING, "Time of day of the purchase"),
        ColumnSchema("geography", ColumnKind.INTEGER, "Geographic region code"),
        ColumnSchema("week", ColumnKind.INTEGER, "Week number of the purchase"),
        ColumnSchema("household", ColumnKind.ALPHANUMERIC, "Household identifier"),
        ColumnSchema("store", ColumnKind.ALPHANUMERIC, "Store identifier"),
        ColumnSchema("basket", ColumnKind.ALPHANUMERIC, "Basket (trip) identifier"),
        ColumnSchema("day", ColumnKind.INTEGER, "Day number of the purchase"),
        ColumnSchema("coupon", ColumnKind.INTEGER, "Coupon used flag", (_flag("Coupon"),)),
    ),
)

PRODUCT_LOOKUP_SCHEMA = FileSchema(
    file_type=FileType.PRODUCT_LOOKUP,
    required_columns=(
        ColumnSchema("upc", ColumnKind.ALPHANUMERIC, "Universal product code"),
        ColumnSchema(
            "product_description",
            ColumnKind.STRING,
            "Product description",
            (_non_empty_text("Product description"),),
        ),
        ColumnSchema("category", ColumnKind.STRING, "Product category", (_non_empty_text("Category"),)),
        ColumnSchema("brand", ColumnKind.STRING, "Product brand", (_non_empty_text("Brand"),)),
        ColumnSchema("product_size", ColumnKind.NUMBER, "Package size", (_positive("Product size"),)),
    ),
)

CAUSAL_LOOKUP_SCHEMA = FileSchema(
    file_type=FileType.CAUSAL_LOOKUP,
    required_columns=(
        ColumnSchema("upc", ColumnKind.ALPHANUMERIC, "Universal product code"),
        ColumnSchema("store_id", ColumnKind.ALPHANUMERIC, "Store identifier"),
        ColumnSchema("feature", ColumnKind.INTEGER, "Featured in circular flag", (_flag("Feature"),)),
        ColumnSchema("display", ColumnKind.INTEGER, "In-store display flag", (_flag("Display"),)),
        ColumnSchema("start_time", ColumnKind.DATE, "Promotion start"),
        ColumnSchema("end_time", ColumnKind.DATE, "Promotion end"),
    ),
    date_ranges=(("start_time", "end_time"),),
)

_SCHEMAS: Mapping[str, FileSchema] = MappingProxyType(
    {
        FileType.TRANSACTION: TRANSACTION_SCHEMA,
        FileType.PRODUCT_LOOKUP: PRODUCT_LOOKUP_SCHEMA,
        FileType.CAUSAL_LOOKUP: CAUSAL_LOOKUP_SCHEMA,
    }
)


def get_schema(file_type: str) -> FileSchema | None:
    """
    Return the schema registered for ``file_type``, or None.
    """

    return _SCHEMAS.get(file_type)


def require_schema(file_type: str) -> FileSchema:
    schema = get_schema(file_type)
    if schema is None:
        raise SchemaNotFoundError(f"No validation schema found for file type: {file_type}")
    return schema


def registered_file_types() -> tuple[str, ...]:
    return tuple(_SCHEMAS)
