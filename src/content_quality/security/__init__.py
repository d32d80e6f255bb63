"""Boundary validation -- content limits, requirement fields, URL safety."""
from .validators import (
    ValidationError,
    validate_length,
    validate_list_size,
    validate_not_empty,
    validate_positive_number,
    validate_url,
)
