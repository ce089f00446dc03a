"""Incremental reading and writing of the array format.

The array format is a single JSON array of ``{"Key": ..., "Value": ...}``
objects where the value is standard base64. Neither class here ever holds
more than one element of the array in memory.
"""

import base64
import binascii
import json
import logging
from typing import BinaryIO, Callable, Iterator, Optional

import ijson
from ijson.common import ObjectBuilder

from .models import Record
from .types import ProcessingError, FormatError, BackendIOError, ErrorType

KEY_FIELD = "Key"
VALUE_FIELD = "Value"

_OPENING_EVENTS = ("start_map", "start_array")
_CLOSING_EVENTS = ("end_map", "end_array")


class ArrayStreamReader:
    """
    Streaming reader for the array format.

    Call open() once to consume the opening ``[``, then next() until it
    returns None. Content after the closing ``]`` is never interpreted, so an
    array may be followed by further JSON values in the same stream.

    Field names are matched case-insensitively and unknown fields (Consul
    exports carry ``Flags``) are ignored.
    """

    def __init__(self, stream: BinaryIO,
                 key_filter: Optional[Callable[[str], bool]] = None,
                 buf_size: int = 64 * 1024,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the reader.

        Args:
            stream: Binary stream positioned at the start of the document
            key_filter: Optional predicate; elements whose key fails it are
                skipped before their value is decoded
            buf_size: Read size handed to the tokenizer
            logger: Optional logger instance
        """
        self.stream = stream
        self.key_filter = key_filter
        self.buf_size = buf_size
        self.logger = logger or logging.getLogger(__name__)

        self.position = 0
        self.skipped = 0
        self._events = None
        self._exhausted = False
        self._in_element = False

    def open(self) -> None:
        """
        Consume the opening array delimiter.

        Raises:
            FormatError: If the document does not start with ``[``
        """
        if self._events is not None:
            raise ProcessingError("array reader is already open", ErrorType.FORMAT)

        self._events = ijson.parse(self.stream, buf_size=self.buf_size, multiple_values=True)
        _, event, value = self._next_event()
        if event != "start_array":
            raise FormatError(f"expected JSON token: '[', got: {_describe(event, value)}")

    def next(self) -> Optional[Record]:
        """
        Read the next element of the array.

        Returns:
            The decoded Record, or None when the array is exhausted

        Raises:
            FormatError: If the element is malformed
        """
        if self._events is None:
            raise ProcessingError("array reader is not open", ErrorType.FORMAT)

        while not self._exhausted:
            self._in_element = False
            try:
                record = self._next_record()
            except ProcessingError as e:
                if self._in_element and e.entry is None:
                    e.entry = self.position
                raise
            if record is not None:
                return record

        return None

    def __iter__(self) -> Iterator[Record]:
        while True:
            record = self.next()
            if record is None:
                return
            yield record

    def _next_record(self) -> Optional[Record]:
        """Read one element; None means it was filtered out or the array ended."""
        element = self._read_element()
        if element is None:
            self._exhausted = True
            return None

        key = self._field(element, KEY_FIELD)
        if not isinstance(key, str):
            raise FormatError(f"{KEY_FIELD} must be a string")

        if self.key_filter is not None and not self.key_filter(key):
            self.skipped += 1
            self.logger.debug(f"Skipping entry {self.position} with foreign key {key!r}")
            return None

        value = self._decode_value(self._field(element, VALUE_FIELD))
        try:
            return Record(key=key, value=value)
        except ValueError as e:
            raise FormatError(str(e), context={"key": key})

    def _read_element(self) -> Optional[dict]:
        """Assemble the next array element, or return None at ``]``."""
        _, event, value = self._next_event()
        if event == "end_array":
            return None

        self.position += 1
        self._in_element = True
        if event != "start_map":
            raise FormatError(f"expected JSON object, got: {_describe(event, value)}")

        builder = ObjectBuilder()
        builder.event(event, value)
        depth = 1
        while depth:
            _, event, value = self._next_event()
            builder.event(event, value)
            if event in _OPENING_EVENTS:
                depth += 1
            elif event in _CLOSING_EVENTS:
                depth -= 1
        return builder.value

    def _next_event(self):
        try:
            return next(self._events)
        except StopIteration:
            raise FormatError("unexpected end of JSON input")
        except ijson.JSONError as e:
            raise FormatError(f"malformed JSON: {e}")
        except ValueError as e:
            raise FormatError(f"malformed JSON: {e}")
        except OSError as e:
            raise BackendIOError(f"read failed: {e}")

    @staticmethod
    def _field(element: dict, name: str):
        if name in element:
            return element[name]
        lowered = name.lower()
        for field_name, field_value in element.items():
            if field_name.lower() == lowered:
                return field_value
        return None

    def _decode_value(self, encoded) -> bytes:
        if encoded is None:
            return b""
        if not isinstance(encoded, str):
            raise FormatError(f"{VALUE_FIELD} must be a base64 string")
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise FormatError(f"illegal base64 data in {VALUE_FIELD}: {e}")


class ArrayStreamWriter:
    """
    Streaming writer for the array format.

    Elements are tab-indented, one object per element::

        [
        	{
        		"Key": "vault/core/keyring",
        		"Value": "AAAA"
        	}
        ]

    close() must run on every exit path so that a partially written array
    is still syntactically closed.
    """

    def __init__(self, stream: BinaryIO, logger: Optional[logging.Logger] = None):
        """
        Initialize the writer.

        Args:
            stream: Binary stream to write UTF-8 JSON text to
            logger: Optional logger instance
        """
        self.stream = stream
        self.logger = logger or logging.getLogger(__name__)

        self.count = 0
        self.bytes_written = 0
        self._opened = False
        self._closed = False

    def open(self) -> None:
        """Emit the opening delimiter."""
        if self._opened:
            raise ProcessingError("array writer is already open", ErrorType.FORMAT)
        self._opened = True
        self._emit("[\n")

    def write(self, record: Record) -> None:
        """
        Append one record to the array.

        The element is fully serialised before anything is written, so a
        record that fails to encode leaves the output untouched.
        """
        if not self._opened or self._closed:
            raise ProcessingError("array writer is not open", ErrorType.FORMAT)

        element = self._serialize(record)
        separator = "\t" if self.count == 0 else ",\n\t"
        self._emit(separator + element)
        self.count += 1

    def close(self) -> None:
        """Emit the closing delimiter and flush. Idempotent."""
        if not self._opened or self._closed:
            return
        self._closed = True
        self._emit("\n]\n" if self.count else "]\n")
        try:
            self.stream.flush()
        except OSError as e:
            raise BackendIOError(f"flush failed: {e}")

    @staticmethod
    def _serialize(record: Record) -> str:
        try:
            text = json.dumps(record.to_array_entry(), indent="\t", ensure_ascii=False)
            text.encode("utf-8")
        except (TypeError, ValueError) as e:
            raise FormatError(f"cannot encode key {record.key!r}: {e}")
        return text.replace("\n", "\n\t")

    def _emit(self, text: str) -> None:
        data = text.encode("utf-8")
        try:
            self.stream.write(data)
        except OSError as e:
            raise BackendIOError(f"write failed: {e}")
        self.bytes_written += len(data)


def _describe(event: str, value) -> str:
    if value is None:
        return event
    return f"{event} {value!r}"
