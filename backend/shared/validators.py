"""Settings helpers for list-valued fields read from the environment."""

import json
from typing import Any

from pydantic.fields import FieldInfo
from pydantic_settings import EnvSettingsSource


def _split(raw: str) -> list[str]:
    stripped = raw.strip()
    if not stripped:
        raise ValueError("String list value must not be empty")
    if not stripped.startswith("["):
        return stripped.split(",")
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON array: {e}") from e
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise ValueError("JSON value must be an array of strings")
    return parsed


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a list given as a list, a JSON array string or a comma-separated string.

    Entries are stripped and blank entries dropped. An empty string is always
    an error; an empty result is one unless allow_empty is set.
    """
    items = value if isinstance(value, list) else _split(value)
    result = [item.strip() for item in items if item.strip()]
    if not allow_empty and not result:
        raise ValueError("String list value must not be empty")
    return result


def parse_origin_list(value: str | list[str]) -> list[str]:
    """CORS origins: trailing slashes removed, duplicates dropped, order kept."""
    origins = (origin.rstrip("/") for origin in parse_string_list(value, allow_empty=True))
    return list(dict.fromkeys(origins))


def is_string_list_field(field: FieldInfo) -> bool:
    return field.annotation == list[str]


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands raw strings of ``list[str]`` fields to the field validators.

    pydantic-settings would JSON-decode them first and reject the CSV form.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if isinstance(value, str) and is_string_list_field(field):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
