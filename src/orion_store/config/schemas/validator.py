"""JSON Schema validation for remote payloads.

Remote config, the app catalog and the release mirror are checked before
use. A payload that fails validation is treated exactly like one that
failed to parse: the caller falls back to its next source.
"""

from pathlib import Path
from typing import Any

import orjson
from jsonschema import Draft7Validator, ValidationError
from jsonschema.exceptions import best_match

from orion_store.exceptions import DataMalformedError
from orion_store.logger import get_logger

logger = get_logger(__name__)

SCHEMA_DIR = Path(__file__).parent
REMOTE_CONFIG_SCHEMA_PATH = SCHEMA_DIR / "remote_config.schema.json"
CATALOG_SCHEMA_PATH = SCHEMA_DIR / "catalog.schema.json"
MIRROR_SCHEMA_PATH = SCHEMA_DIR / "mirror.schema.json"


def _load_schema(schema_path: Path) -> dict[str, Any]:
    """Load a JSON schema file.

    Raises:
        FileNotFoundError: If the schema file is missing
        ValueError: If the schema file is not valid JSON

    """
    if not schema_path.exists():
        msg = f"Schema file not found: {schema_path}"
        raise FileNotFoundError(msg)
    try:
        return orjson.loads(schema_path.read_bytes())  # type: ignore[no-any-return]
    except orjson.JSONDecodeError as e:
        msg = f"Invalid JSON in schema file {schema_path}: {e}"
        raise ValueError(msg) from e


def _format_validation_error(error: ValidationError) -> str:
    path = (
        ".".join(str(p) for p in error.absolute_path)
        if error.absolute_path
        else "root"
    )
    if error.validator == "type":
        actual = type(error.instance).__name__
        message = f"Expected type '{error.validator_value}', got '{actual}'"
    elif error.validator == "required":
        message = f"Missing required field ({error.message})"
    else:
        message = error.message
    return f"{message} (at '{path}')"


class PayloadValidator:
    """Validates remote JSON payloads against bundled schemas."""

    def __init__(self) -> None:
        self._validators = {
            "config": Draft7Validator(_load_schema(REMOTE_CONFIG_SCHEMA_PATH)),
            "catalog": Draft7Validator(_load_schema(CATALOG_SCHEMA_PATH)),
            "mirror": Draft7Validator(_load_schema(MIRROR_SCHEMA_PATH)),
        }

    def _validate(self, kind: str, payload: Any, source: str | None) -> None:
        errors = list(self._validators[kind].iter_errors(payload))
        if errors:
            error_msg = (
                f"Invalid {kind} payload: "
                f"{_format_validation_error(best_match(errors))}"
            )
            raise DataMalformedError(error_msg, source)
        logger.debug("%s payload validation passed: %s", kind, source)

    def validate_config(self, payload: Any, source: str | None = None) -> None:
        """Validate a remote store configuration object.

        Raises:
            DataMalformedError: If validation fails

        """
        self._validate("config", payload, source)

    def validate_catalog(self, payload: Any, source: str | None = None) -> None:
        """Validate an app catalog (must be a JSON array).

        Individual entries are not checked; non-object entries are dropped
        later during sanitization.

        Raises:
            DataMalformedError: If validation fails

        """
        self._validate("catalog", payload, source)

    def validate_mirror(self, payload: Any, source: str | None = None) -> None:
        """Validate a release mirror object.

        Raises:
            DataMalformedError: If validation fails

        """
        self._validate("mirror", payload, source)


_validator: PayloadValidator | None = None


def get_validator() -> PayloadValidator:
    """Get or create the shared validator instance."""
    global _validator  # noqa: PLW0603
    if _validator is None:
        _validator = PayloadValidator()
    return _validator
