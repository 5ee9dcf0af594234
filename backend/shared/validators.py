"""Shared validation helpers for settings and loosely-typed request fields.

Multipart forms deliver every field as a string, JSON bodies deliver real
types; the helpers here accept both so handlers do not need two code paths.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"", "0", "false", "no", "off"}

# Largest value a SQLite INTEGER column can hold
MAX_STORED_INT = 2**63 - 1


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a string list from environment variable or config value.

    Accepts:
    - A list of strings (returned as-is)
    - A JSON array string: '["a","b"]'
    - A comma-separated string: 'a,b'

    Raises ValueError for empty string values or malformed JSON.
    When allow_empty is False (default), also rejects empty lists.
    """
    if isinstance(value, list):
        if not allow_empty and not value:
            raise ValueError("String list value must not be empty")
        return value

    stripped = value.strip()
    if not stripped:
        if allow_empty:
            return []
        raise ValueError("String list value must not be empty")

    if stripped.startswith("["):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON array: {e}") from e
        if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
            raise ValueError("JSON value must be an array of strings")
        if not allow_empty and not parsed:
            raise ValueError("String list value must not be empty")
        return parsed

    result = [item.strip() for item in stripped.split(",") if item.strip()]
    if not allow_empty and not result:
        raise ValueError("String list value must not be empty")
    return result


def parse_flag(value: object) -> bool:
    """Interpret a boolean request field (JSON bool, form string, or absent)."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Expected a boolean, got {value!r}")


def parse_optional_positive_int(value: object) -> int | None:
    """Return None for absent/blank values, otherwise an integer in [1, MAX_STORED_INT].

    Raises ValueError for anything else, including bools, floats with a
    fractional part and values too large for a SQLite INTEGER column.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError("Expected a positive integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("Expected a positive integer")
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as e:
            raise ValueError("Expected a positive integer") from e
    if not isinstance(value, int) or not 1 <= value <= MAX_STORED_INT:
        raise ValueError("Expected a positive integer")
    return value


_STRING_LIST_FIELDS = {"cors_origins", "allowed_mime_types"}


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env settings source that passes string-list fields as raw strings to validators.

    pydantic-settings tries to JSON-decode list-typed fields from env vars before
    validators run. This subclass bypasses that for string-list fields so our custom
    parse_string_list validator handles both JSON and CSV formats.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in _STRING_LIST_FIELDS and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
