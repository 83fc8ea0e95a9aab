"""Shared utilities."""
from utils.case import dict_keys_to_snake, to_snake_key
from utils.dates import has_weekend_in_range, implementation_template, local_today

__all__ = [
    "to_snake_key",
    "dict_keys_to_snake",
    "has_weekend_in_range",
    "implementation_template",
    "local_today",
]
