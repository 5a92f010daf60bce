"""Payload shape validation and the validate-then-transform pipeline."""

from .pipeline import (
    DataValidationError,
    TransformError,
    create_fallback_data,
    track_cache_performance,
    validate_and_transform,
    validate_data_shape,
)
from .registry import VALIDATOR_REGISTRY, get_validator_for_endpoint
from .validators import Invalid, ShapeValidator, Valid, ValidationResult, generate_validation_report

__all__ = [
    "DataValidationError",
    "TransformError",
    "create_fallback_data",
    "track_cache_performance",
    "validate_and_transform",
    "validate_data_shape",
    "VALIDATOR_REGISTRY",
    "get_validator_for_endpoint",
    "Invalid",
    "ShapeValidator",
    "Valid",
    "ValidationResult",
    "generate_validation_report",
]
