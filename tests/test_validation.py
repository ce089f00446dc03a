"""Tests for validation utilities."""

from vault_convert.utils.validation import ValidationUtils
from vault_convert.models import Record
from vault_convert.types import ErrorType


class TestValidationUtils:
    """Tests for ValidationUtils class."""
    
    def test_validate_plain_prefix(self):
        """Test that a clean prefix passes without warnings."""
        result = ValidationUtils.validate_key_prefix("vault")
        
        assert result.is_valid
        assert len(result.errors) == 0
        assert result.warnings == []
    
    def test_validate_prefix_needing_cleanup(self):
        """Test that a prefix changed by cleaning produces a warning."""
        result = ValidationUtils.validate_key_prefix("vault/")
        
        assert result.is_valid
        assert any("'vault'" in warning for warning in result.warnings)
    
    def test_validate_absolute_prefix(self):
        """Test that an absolute prefix is accepted with a warning."""
        result = ValidationUtils.validate_key_prefix("/vault")
        
        assert result.is_valid
        assert any("absolute" in warning for warning in result.warnings)
    
    def test_validate_root_prefix(self):
        """Test that '/' is rejected as a prefix."""
        result = ValidationUtils.validate_key_prefix("/")
        
        assert not result.is_valid
        assert result.errors[0].type == ErrorType.CONFIG
        assert result.errors[0].location == "key_prefix"
    
    def test_validate_non_string_prefix(self):
        """Test that a non-string prefix is rejected."""
        result = ValidationUtils.validate_key_prefix(None)
        
        assert not result.is_valid
        assert "must be a string" in result.errors[0].message
    
    def test_validate_record_with_value(self):
        result = ValidationUtils.validate_record(Record(key="a", value=b"x"))
        assert result.is_valid
    
    def test_validate_empty_record_rejected_by_default(self):
        """Test the default empty-value policy."""
        result = ValidationUtils.validate_record(Record(key="a/b", value=b""))
        
        assert not result.is_valid
        assert result.errors[0].type == ErrorType.FORMAT
        assert result.errors[0].message == "value was empty"
        assert result.errors[0].location == "a/b"
    
    def test_validate_empty_record_allowed(self):
        """Test that empty values pass when explicitly allowed."""
        result = ValidationUtils.validate_record(Record(key="a", value=b""), allow_empty_values=True)
        assert result.is_valid
