"""
JSON rendering of service dataclasses for API responses.

Field names become camelCase, the same convention as the `{error, requiresAuth}`
error body. Mapping keys (language names) are data and are left as-is.
"""

from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from typing import Any

from pydantic.alias_generators import to_camel


def to_json(obj: Any) -> Any:
    """Convert dataclasses, read-only mappings and tuples into plain JSON values."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return {to_camel(f.name): to_json(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Mapping):
        return {key: to_json(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json(item) for item in obj]
    return obj
