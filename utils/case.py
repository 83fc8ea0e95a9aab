"""
Key normalization for loosely shaped payloads (push messages, legacy clients).
Uses Pydantic's alias_generators so camelCase and snake_case keys collapse to one form.
"""
from typing import Any

from pydantic.alias_generators import to_snake


def to_snake_key(s: str) -> str:
    """Convert a single camelCase key to snake_case."""
    return to_snake(s)


def dict_keys_to_snake(obj: Any) -> Any:
    """Recursively convert dict keys from camelCase to snake_case."""
    if isinstance(obj, dict):
        return {to_snake_key(str(k)): dict_keys_to_snake(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_snake(x) for x in obj]
    return obj
