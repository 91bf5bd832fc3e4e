"""Validation helpers for service settings."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def parse_origin_list(value: str | list[str]) -> list[str]:
    """Parse a list of CORS origins from an env var or config value.

    Accepts a list (returned as-is), a JSON array string ('["a","b"]') or a
    comma-separated string ('a,b'). Empty input is rejected.
    """
    if isinstance(value, list):
        if not value:
            raise ValueError("Origin list must not be empty")
        return value

    stripped = value.strip()
    if not stripped:
        raise ValueError("Origin list must not be empty")

    if stripped.startswith("["):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON array: {e}") from e
        if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
            raise ValueError("JSON value must be an array of strings")
        if not parsed:
            raise ValueError("Origin list must not be empty")
        return parsed

    origins = [origin.strip() for origin in stripped.split(",") if origin.strip()]
    if not origins:
        raise ValueError("Origin list must not be empty")
    return origins


class OriginListEnvSettingsSource(EnvSettingsSource):
    """Env settings source that hands `cors_origins` to validators as a raw string.

    pydantic-settings JSON-decodes list fields read from the environment before
    validators run, which breaks the comma-separated form.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name == "cors_origins" and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
