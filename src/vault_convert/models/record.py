"""Record model implementation."""

import base64
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Record:
    """
    One key/value pair travelling between a source and a sink.
    
    The key is a slash-delimited path and the value is opaque bytes. Records
    only exist inside the conversion pipeline; they are never persisted as
    standalone objects.
    """
    
    key: str
    value: bytes
    
    def __post_init__(self):
        """Validate record after initialization."""
        self._validate()
    
    def _validate(self) -> None:
        """Validate record integrity."""
        if not isinstance(self.key, str):
            raise ValueError("key must be a string")
        
        if not self.key:
            raise ValueError("key was empty")
        
        if not isinstance(self.value, bytes):
            raise ValueError("value must be bytes")
    
    def to_array_entry(self) -> Dict[str, str]:
        """
        Convert record to the array-format object.
        
        Returns:
            Dictionary with ``Key`` and standard-alphabet base64 ``Value``
        """
        return {
            "Key": self.key,
            "Value": base64.b64encode(self.value).decode("ascii"),
        }
    
    def with_key(self, key: str) -> 'Record':
        """Return a copy of this record under a different key."""
        return Record(key=key, value=self.value)
    
    def is_empty(self) -> bool:
        """Check if the record carries a zero-length value."""
        return len(self.value) == 0
