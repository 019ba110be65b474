"""JSON Schema validation for remote config, catalog and mirror payloads."""

from orion_store.config.schemas.validator import (
    PayloadValidator,
    get_validator,
)

__all__ = ["PayloadValidator", "get_validator"]
