"""Utility functions for vault-convert."""

from .keys import (
    normalize_prefix,
    add_prefix,
    has_prefix,
    strip_prefix,
    key_to_relative_path,
    relative_path_to_key,
)
from .validation import ValidationUtils

__all__ = [
    "normalize_prefix",
    "add_prefix",
    "has_prefix",
    "strip_prefix",
    "key_to_relative_path",
    "relative_path_to_key",
    "ValidationUtils",
]
