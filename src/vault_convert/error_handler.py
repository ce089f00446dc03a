"""Error handling implementation for vault-convert."""

import logging
from typing import Optional
from .types import (
    ValidationResult,
    ErrorResponse,
    ProcessingError,
    ErrorType
)
from .models import Record
from .utils.validation import ValidationUtils


class FirstErrorSlot:
    """
    Holds the first error of a conversion run.
    
    Once set the slot is never overwritten; later errors are logged at debug
    level and discarded.
    """
    
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._error: Optional[ProcessingError] = None
    
    @property
    def error(self) -> Optional[ProcessingError]:
        return self._error
    
    def is_set(self) -> bool:
        return self._error is not None
    
    def set(self, error: ProcessingError) -> bool:
        """
        Record an error unless one is already held.
        
        Returns:
            True if the error was stored
        """
        if self._error is None:
            self._error = error
            return True
        self.logger.debug(f"Discarding error after first failure: {error}")
        return False


class ErrorHandler:
    """
    Error handler for conversion runs.
    
    Provides input validation and turns processing errors into operator
    guidance. There is no retry logic; a failed run is expected to be re-run
    after the cause is fixed.
    """
    
    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the error handler.
        
        Args:
            logger: Optional logger instance for error reporting
        """
        self.logger = logger or logging.getLogger(__name__)
    
    def validate_key_prefix(self, prefix: str) -> ValidationResult:
        """
        Validate the configured key prefix.
        
        Args:
            prefix: Prefix to validate
            
        Returns:
            ValidationResult with validation details
        """
        result = ValidationUtils.validate_key_prefix(prefix)
        for warning in result.warnings:
            self.logger.warning(warning)
        return result
    
    def validate_record(self, record: Record, allow_empty_values: bool = False) -> ValidationResult:
        """
        Validate a record before it reaches a sink.
        
        Args:
            record: Record to validate
            allow_empty_values: Accept zero-length values when True
            
        Returns:
            ValidationResult with validation details
        """
        result = ValidationUtils.validate_record(record, allow_empty_values)
        if result.is_valid and record.is_empty():
            self.logger.debug(f"Passing through empty value for key {record.key!r}")
        return result
    
    def handle_processing_error(self, error: ProcessingError) -> ErrorResponse:
        """
        Describe how an operator can recover from a failed run.
        
        Args:
            error: ProcessingError to handle
            
        Returns:
            ErrorResponse with a suggested action
        """
        self.logger.error(f"Processing error: {error.error_type.value} - {error}")
        
        if error.error_type == ErrorType.CONFIG:
            return self._handle_config_error(error)
        elif error.error_type == ErrorType.FORMAT:
            return self._handle_format_error(error)
        elif error.error_type == ErrorType.IO:
            return self._handle_io_error(error)
        elif error.error_type == ErrorType.NOT_FOUND:
            return self._handle_not_found_error(error)
        else:
            return ErrorResponse(
                can_recover=False,
                suggested_action="Unknown error type. Please check logs and retry.",
                context=error.context
            )
    
    def _handle_config_error(self, error: ProcessingError) -> ErrorResponse:
        """Handle invalid configuration."""
        return ErrorResponse(
            can_recover=True,
            suggested_action="Fix the command line arguments. The key prefix must name "
                           "a namespace and cannot be '/' or '.'.",
            context=error.context
        )
    
    def _handle_format_error(self, error: ProcessingError) -> ErrorResponse:
        """Handle malformed input."""
        location = f" at entry {error.entry}" if error.entry is not None else ""
        return ErrorResponse(
            can_recover=False,
            suggested_action=f"Repair the input{location} and re-run the conversion. "
                           "Output written before the failure is incomplete.",
            context=error.context
        )
    
    def _handle_io_error(self, error: ProcessingError) -> ErrorResponse:
        """Handle filesystem and stream failures."""
        return ErrorResponse(
            can_recover=True,
            suggested_action="Check file permissions, available disk space, and that the "
                           "input tree is quiesced, then re-run the conversion.",
            context=error.context
        )
    
    def _handle_not_found_error(self, error: ProcessingError) -> ErrorResponse:
        """Handle missing keys."""
        return ErrorResponse(
            can_recover=False,
            suggested_action="List the backend to find the correct key.",
            context=error.context
        )
