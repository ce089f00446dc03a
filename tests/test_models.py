"""Tests for data models."""

import pytest
from vault_convert.models import Record, WalkEntry


class TestRecord:
    """Tests for Record model."""
    
    def test_record_creation(self):
        """Test creating a valid record."""
        record = Record(key="core/keyring", value=b"\x00\x01")
        
        assert record.key == "core/keyring"
        assert record.value == b"\x00\x01"
        assert not record.is_empty()
    
    def test_record_empty_key(self):
        """Test that an empty key is rejected."""
        with pytest.raises(ValueError, match="key was empty"):
            Record(key="", value=b"data")
    
    def test_record_non_bytes_value(self):
        """Test that a str value is rejected."""
        with pytest.raises(ValueError, match="value must be bytes"):
            Record(key="a", value="text")
    
    def test_record_empty_value(self):
        """Test that an empty value is representable."""
        record = Record(key="a", value=b"")
        assert record.is_empty()
    
    def test_to_array_entry(self):
        """Test conversion to the array-format object."""
        record = Record(key="vault/a", value=b"hello")
        
        assert record.to_array_entry() == {"Key": "vault/a", "Value": "aGVsbG8="}
    
    def test_with_key(self):
        """Test re-keying keeps the value and leaves the original alone."""
        record = Record(key="vault/a", value=b"v")
        moved = record.with_key("a")
        
        assert moved.key == "a"
        assert moved.value == b"v"
        assert record.key == "vault/a"
    
    def test_record_is_immutable(self):
        """Test that records are frozen."""
        record = Record(key="a", value=b"v")
        with pytest.raises(AttributeError):
            record.key = "b"


class TestWalkEntry:
    """Tests for WalkEntry model."""
    
    def test_walk_entry_defaults(self):
        entry = WalkEntry(path="/tmp/x/_a")
        assert entry.path == "/tmp/x/_a"
        assert not entry.is_directory
