"""
retail_insights/validators package marker.
"""

from retail_insights.validators.file_validator import (
    FileValidator,
    coerce_date,
    coerce_integer,
    coerce_number,
    validate,
    validate_file,
)
from retail_insights.validators.schema_registry import (
    CAUSAL_LOOKUP_SCHEMA,
    PRODUCT_LOOKUP_SCHEMA,
    TRANSACTION_SCHEMA,
    get_schema,
    registered_file_types,
    require_schema,
)

__all__ = [
    "CAUSAL_LOOKUP_SCHEMA",
    "FileValidator",
    "PRODUCT_LOOKUP_SCHEMA",
    "TRANSACTION_SCHEMA",
    "coerce_date",
    "coerce_integer",
    "coerce_number",
    "get_schema",
    "registered_file_types",
    "require_schema",
    "validate",
    "validate_file",
]
