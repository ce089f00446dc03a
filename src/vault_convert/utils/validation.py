"""Validation utilities for prefixes and records."""

from ..types import ValidationResult, ValidationError, ErrorType, ProcessingError
from ..models import Record
from .keys import normalize_prefix


class ValidationUtils:
    """Utility class for validating conversion inputs."""
    
    @staticmethod
    def validate_key_prefix(prefix: str) -> ValidationResult:
        """
        Validate a key prefix.
        
        Args:
            prefix: Prefix to validate
            
        Returns:
            ValidationResult with validation details
        """
        errors = []
        warnings = []
        
        if not isinstance(prefix, str):
            errors.append(ValidationError(
                type=ErrorType.CONFIG,
                message=f"Key prefix must be a string, got {type(prefix).__name__}",
                location="key_prefix"
            ))
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings)
        
        try:
            normalized = normalize_prefix(prefix)
        except ProcessingError as e:
            errors.append(ValidationError(
                type=e.error_type,
                message=str(e),
                location="key_prefix"
            ))
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings)
        
        if normalized != prefix:
            warnings.append(f"Key prefix {prefix!r} will be used as {normalized!r}")
        if normalized.startswith("/"):
            warnings.append("Key prefix is absolute; exported keys will start with '/'")
        
        return ValidationResult(is_valid=True, errors=errors, warnings=warnings)
    
    @staticmethod
    def validate_record(record: Record, allow_empty_values: bool = False) -> ValidationResult:
        """
        Validate a record against the empty-value policy.
        
        Args:
            record: Record to validate
            allow_empty_values: Accept zero-length values when True
            
        Returns:
            ValidationResult with validation details
        """
        errors = []
        
        if record.is_empty() and not allow_empty_values:
            errors.append(ValidationError(
                type=ErrorType.FORMAT,
                message="value was empty",
                location=record.key
            ))
        
        return ValidationResult(is_valid=len(errors) == 0, errors=errors)
