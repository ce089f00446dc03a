"""
Vault Convert - Offline migration of Vault storage backends.

Converts between a Consul KV export (a JSON array of base64 key/value
entries) and the directory tree of a Vault filesystem backend.
"""

__version__ = "1.0.0"

from .converter import BackendConverter
from .models import Record
from .types import (
    ConversionConfig,
    ConversionResult,
    LeafFormat,
    ProcessingError,
    ConfigError,
    FormatError,
    BackendIOError,
    NotFoundError,
)

__all__ = [
    "BackendConverter",
    "Record",
    "ConversionConfig",
    "ConversionResult",
    "LeafFormat",
    "ProcessingError",
    "ConfigError",
    "FormatError",
    "BackendIOError",
    "NotFoundError",
]
