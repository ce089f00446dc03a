"""Tests for key prefix and path mapping helpers."""

import os
import pytest
from vault_convert.types import ConfigError, FormatError
from vault_convert.utils.keys import (
    normalize_prefix,
    add_prefix,
    has_prefix,
    strip_prefix,
    key_segments,
    key_to_relative_path,
    relative_path_to_key,
)


class TestNormalizePrefix:
    """Tests for normalize_prefix."""
    
    @pytest.mark.parametrize("raw, expected", [
        ("vault", "vault"),
        ("vault/", "vault"),
        ("./vault//data/", "vault/data"),
        ("a/b/../c", "a/c"),
        ("//vault", "/vault"),
    ])
    def test_cleaning(self, raw, expected):
        assert normalize_prefix(raw) == expected
    
    @pytest.mark.parametrize("raw", ["/", ".", "", "a/..", "//"])
    def test_degenerate_prefix_rejected(self, raw):
        with pytest.raises(ConfigError, match="invalid key prefix"):
            normalize_prefix(raw)


class TestPrefixTransforms:
    """Tests for add_prefix, has_prefix and strip_prefix."""
    
    def test_add_prefix(self):
        assert add_prefix("core/keyring", "vault") == "vault/core/keyring"
        assert add_prefix("a", "") == "a"
    
    def test_has_prefix_is_segment_wise(self):
        assert has_prefix("vault/a", "vault")
        assert has_prefix("vault/a/b", "vault/a")
        assert not has_prefix("vaultx/a", "vault")
        assert not has_prefix("vault", "vault/a")
        assert not has_prefix("other/vault/a", "vault")
    
    def test_strip_prefix(self):
        assert strip_prefix("vault/core/keyring", "vault") == "core/keyring"
        assert strip_prefix("vault/a/b", "vault/a") == "b"
        assert strip_prefix("vault", "vault") == ""
    
    def test_strip_prefix_leaves_foreign_keys(self):
        assert strip_prefix("other/a", "vault") == "other/a"
    
    def test_add_then_strip(self):
        assert strip_prefix(add_prefix("a/b", "ns/x"), "ns/x") == "a/b"


class TestPathMapping:
    """Tests for the key <-> leaf path mapping."""
    
    def test_key_to_relative_path(self):
        assert key_to_relative_path("a/b/c") == os.path.join("a", "b", "_c")
        assert key_to_relative_path("c") == "_c"
    
    def test_relative_path_to_key(self):
        assert relative_path_to_key(os.path.join("a", "b", "_c")) == "a/b/c"
        assert relative_path_to_key("_c") == "c"
    
    def test_underscore_inside_leaf_is_kept(self):
        assert relative_path_to_key(os.path.join("a", "__c")) == "a/_c"
        assert key_to_relative_path("a/_c") == os.path.join("a", "__c")
    
    @pytest.mark.parametrize("path", ["c", os.path.join("a", "c"), "_"])
    def test_leaf_without_marker_rejected(self, path):
        with pytest.raises(FormatError, match="is not a leaf entry"):
            relative_path_to_key(path)
    
    @pytest.mark.parametrize("key", ["", "a//b", "/a", "a/", "a/../b", "./a"])
    def test_unsafe_keys_rejected(self, key):
        with pytest.raises(FormatError):
            key_segments(key)
