"""Schema and custom-rule validation of the serialized artifact."""

from kustoguard.validation.custom import evaluate_rules
from kustoguard.validation.schema import SchemaValidatorError, validate_schema

__all__ = [
    "SchemaValidatorError",
    "evaluate_rules",
    "validate_schema",
]
