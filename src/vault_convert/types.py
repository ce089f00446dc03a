"""Core type definitions for vault-convert."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorType(Enum):
    """Enumeration of error types."""
    CONFIG = "config"
    FORMAT = "format"
    IO = "io"
    NOT_FOUND = "not_found"


class LeafFormat(Enum):
    """Encoding of a single leaf file in the tree format."""
    RAW = "raw"
    ENTRY = "entry"


class ConversionState(Enum):
    """Lifecycle states of one conversion run."""
    INITIALIZING = "initializing"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ConversionConfig:
    """
    Settings shared by both conversion directions.
    
    key_prefix is the namespace the records occupy in the array format.
    It is added on tree-to-array and filtered-then-stripped on array-to-tree.
    """
    key_prefix: str = "vault"
    leaf_format: LeafFormat = LeafFormat.RAW
    allow_empty_values: bool = False
    queue_size: int = 10
    directory_mode: int = 0o700
    file_mode: int = 0o600


@dataclass
class ConversionResult:
    """Result of a conversion run."""
    success: bool
    state: ConversionState
    input_path: str
    output_path: str
    records_read: int = 0
    records_written: int = 0
    records_skipped: int = 0
    error: Optional['ProcessingError'] = None
    errors: Optional[List[str]] = None


@dataclass
class ValidationError:
    """Validation error details."""
    type: ErrorType
    message: str
    location: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of input validation."""
    is_valid: bool
    errors: List[ValidationError]
    warnings: List[str] = field(default_factory=list)


@dataclass
class ErrorResponse:
    """Response for error handling."""
    can_recover: bool
    suggested_action: str
    context: Optional[Dict[str, Any]] = None


class ProcessingError(Exception):
    """
    Base exception for conversion errors.
    
    When the failure belongs to a specific source record, ``entry`` holds its
    1-based ordinal and is rendered as an ``entry N:`` message prefix.
    """
    
    def __init__(self, message: str, error_type: ErrorType, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.context = context
        self.entry: Optional[int] = None
    
    def __str__(self) -> str:
        if self.entry is not None:
            return f"entry {self.entry}: {self.message}"
        return self.message


class ConfigError(ProcessingError):
    """Invalid key prefix or other bad user input."""
    
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorType.CONFIG, context)


class FormatError(ProcessingError):
    """Malformed array document, bad base64, or an invalid record."""
    
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorType.FORMAT, context)


class BackendIOError(ProcessingError):
    """Filesystem or stream failure."""
    
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorType.IO, context)


class NotFoundError(ProcessingError):
    """Requested key is absent from a backend."""
    
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorType.NOT_FOUND, context)
