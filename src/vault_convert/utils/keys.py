"""Key prefix transforms and the tree-format path <-> key mapping.

Keys are slash-delimited strings. Prefix comparisons are made segment by
segment, never on raw substrings, so ``vault`` is a prefix of ``vault/a``
but not of ``vaultx/a``.
"""

import os
import posixpath
from typing import List

from ..types import ConfigError, FormatError

KEY_SEPARATOR = "/"
LEAF_MARKER = "_"


def normalize_prefix(prefix: str) -> str:
    """
    Clean a key prefix and reject degenerate values.
    
    Args:
        prefix: Raw prefix as supplied by the user
        
    Returns:
        The lexically cleaned prefix
        
    Raises:
        ConfigError: If the prefix cleans to ``/`` or ``.``
    """
    normalized = posixpath.normpath(prefix)
    # normpath keeps a leading double slash; collapse it like any other run.
    if normalized.startswith("//"):
        normalized = KEY_SEPARATOR + normalized.lstrip(KEY_SEPARATOR)
    if normalized in (KEY_SEPARATOR, "."):
        raise ConfigError(f"invalid key prefix: {prefix!r}", context={"prefix": prefix})
    return normalized


def add_prefix(key: str, prefix: str) -> str:
    """Join ``prefix`` in front of ``key``; an empty prefix leaves the key alone."""
    if not prefix:
        return key
    return prefix + KEY_SEPARATOR + key


def has_prefix(key: str, prefix: str) -> bool:
    """Segment-wise test that ``key`` lives under ``prefix``."""
    key_segments = key.split(KEY_SEPARATOR)
    prefix_segments = prefix.split(KEY_SEPARATOR)
    if len(key_segments) < len(prefix_segments):
        return False
    return key_segments[:len(prefix_segments)] == prefix_segments


def strip_prefix(key: str, prefix: str) -> str:
    """
    Remove ``prefix`` from the front of ``key``.
    
    Keys that do not lie under the prefix are returned unchanged. The
    converters filter with has_prefix first, so they only ever strip keys
    that match.
    """
    if not has_prefix(key, prefix):
        return key
    key_segments = key.split(KEY_SEPARATOR)
    return KEY_SEPARATOR.join(key_segments[len(prefix.split(KEY_SEPARATOR)):])


def key_segments(key: str) -> List[str]:
    """
    Split a key destined for the tree format, rejecting unsafe segments.
    
    Raises:
        FormatError: If the key is empty or has empty, ``.`` or ``..`` segments
    """
    if not key:
        raise FormatError("key was empty")
    segments = key.split(KEY_SEPARATOR)
    for segment in segments:
        if segment in ("", ".", ".."):
            raise FormatError(f"key {key!r} cannot be mapped to a file path",
                              context={"key": key})
    return segments


def key_to_relative_path(key: str) -> str:
    """Map ``a/b/c`` to the relative leaf path ``a/b/_c``."""
    segments = key_segments(key)
    segments[-1] = LEAF_MARKER + segments[-1]
    return os.path.join(*segments)


def relative_path_to_key(relative_path: str) -> str:
    """
    Map a leaf path relative to the tree root back to its key.
    
    Raises:
        FormatError: If the file name lacks the leading underscore marker
    """
    segments = relative_path.split(os.sep)
    leaf = segments[-1]
    if not leaf.startswith(LEAF_MARKER) or len(leaf) == len(LEAF_MARKER):
        raise FormatError(f"file {relative_path!r} is not a leaf entry",
                          context={"path": relative_path})
    segments[-1] = leaf[len(LEAF_MARKER):]
    key = KEY_SEPARATOR.join(segments)
    try:
        key.encode("utf-8")
    except UnicodeEncodeError:
        raise FormatError(f"file {relative_path!r} does not have a UTF-8 name",
                          context={"path": relative_path})
    return key
