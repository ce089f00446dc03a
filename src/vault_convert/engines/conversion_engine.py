"""Conversion engines that stream records between the array and tree formats."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from ..error_handler import ErrorHandler, FirstErrorSlot
from ..io.file_tree import FileTreeBackend
from ..models import Record
from ..profiler import PerformanceProfiler
from ..streaming import ArrayStreamReader, ArrayStreamWriter
from ..types import (
    ConversionConfig,
    ConversionResult,
    ConversionState,
    ProcessingError,
    BackendIOError,
    ConfigError,
    FormatError,
)
from ..utils.keys import add_prefix, has_prefix, normalize_prefix, relative_path_to_key, strip_prefix
from ..walker import TreeWalker


class ConversionEngine(ABC):
    """
    One conversion run from a record source to a record sink.

    An engine moves through INITIALIZING, RUNNING and then SUCCEEDED or
    FAILED. Records are pulled one at a time, transformed and pushed, and
    the first error ends the run. Every opened resource is closed on the way
    out; a close failure is only reported when nothing failed earlier.

    Engines are single use: create a new one for every run.
    """

    operation_name = "conversion"
    sample_interval = 100

    def __init__(self, config: Optional[ConversionConfig] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 logger: Optional[logging.Logger] = None,
                 profiler: Optional[PerformanceProfiler] = None):
        """
        Initialize the engine.

        Args:
            config: Conversion settings (defaults to ConversionConfig())
            error_handler: Optional ErrorHandler instance
            logger: Optional logger instance
            profiler: Optional profiler sampled every sample_interval records
        """
        self.config = config or ConversionConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.error_handler = error_handler or ErrorHandler(self.logger)
        self.profiler = profiler

        self.state = ConversionState.INITIALIZING
        self.key_prefix: Optional[str] = None
        self.input_path = ""
        self.output_path = ""
        self.count = 0
        self.records_written = 0
        self.records_skipped = 0

        self._errors = FirstErrorSlot(self.logger)
        self._closers: List[Tuple[str, Callable[[], None]]] = []

    @property
    def error(self) -> Optional[ProcessingError]:
        """First error of the run, if any."""
        return self._errors.error

    def convert_all(self, input_path: str, output_path: str) -> ConversionResult:
        """
        Run the whole conversion.

        Args:
            input_path: Source file or directory
            output_path: Destination file or directory

        Returns:
            ConversionResult describing the run
        """
        if self.state != ConversionState.INITIALIZING:
            raise ValueError("conversion engines are single use")

        self.input_path = str(input_path)
        self.output_path = str(output_path)
        self.logger.info(f"Starting {self.operation_name}: {self.input_path} -> {self.output_path}")

        try:
            self.key_prefix = self._validated_prefix()
            self._open(self.input_path, self.output_path)
            self.state = ConversionState.RUNNING
            while self.convert():
                pass
        except ProcessingError as e:
            self._errors.set(e)
        finally:
            self._close_all()

        return self._finish()

    def convert(self) -> bool:
        """
        Move a single record from source to sink.

        Returns:
            True if a record was handled and the run should continue
        """
        if self.state != ConversionState.RUNNING:
            return False
        try:
            handled = self._step()
        except ProcessingError as e:
            self._errors.set(e)
            self.state = ConversionState.FAILED
            return False
        except OSError as e:
            self._errors.set(self._with_entry(BackendIOError(str(e))))
            self.state = ConversionState.FAILED
            return False

        if handled and self.profiler and self.count % self.sample_interval == 0:
            self.profiler.sample_performance()
        return handled

    def register_closer(self, name: str, closer: Callable[[], None]) -> None:
        """Register teardown for a resource; closers run in reverse order."""
        self._closers.append((name, closer))

    def check_record(self, record: Record) -> None:
        """
        Apply the empty-value policy to a record.

        Raises:
            FormatError: If the record is rejected
        """
        result = self.error_handler.validate_record(record, self.config.allow_empty_values)
        if not result.is_valid:
            raise FormatError(result.errors[0].message, context={"key": record.key})

    @abstractmethod
    def _open(self, input_path: str, output_path: str) -> None:
        """Open source and sink, registering a closer for each."""

    @abstractmethod
    def _step(self) -> bool:
        """Handle one source element; return False when the source is exhausted."""

    def _validated_prefix(self) -> str:
        prefix = self.config.key_prefix
        validation = self.error_handler.validate_key_prefix(prefix)
        if not validation.is_valid:
            raise ConfigError(validation.errors[0].message, context={"prefix": prefix})
        return normalize_prefix(prefix)

    def _with_entry(self, error: ProcessingError) -> ProcessingError:
        if error.entry is None and self.count:
            error.entry = self.count
        return error

    def _close_all(self) -> None:
        while self._closers:
            name, closer = self._closers.pop()
            try:
                closer()
            except ProcessingError as e:
                self._errors.set(e)
            except OSError as e:
                self._errors.set(BackendIOError(f"closing {name} failed: {e}"))

    def _finish(self) -> ConversionResult:
        error = self._errors.error
        self.state = ConversionState.FAILED if error else ConversionState.SUCCEEDED

        if error:
            self.logger.error(f"{self.operation_name} failed after {self.count} entries: {error}")
        else:
            self.logger.info(f"{self.operation_name} finished: {self.count} read, "
                             f"{self.records_written} written, {self.records_skipped} skipped")

        return ConversionResult(
            success=error is None,
            state=self.state,
            input_path=self.input_path,
            output_path=self.output_path,
            records_read=self.count,
            records_written=self.records_written,
            records_skipped=self.records_skipped,
            error=error,
            errors=[str(error)] if error else None
        )


class TreeToArrayEngine(ConversionEngine):
    """
    Export a directory tree to the array format.

    Every leaf file under the input directory becomes one array element, in
    walk order, with the key prefix added in front of its key.
    """

    operation_name = "tree-to-array"

    walker: TreeWalker
    backend: FileTreeBackend
    writer: ArrayStreamWriter

    def _open(self, input_path: str, output_path: str) -> None:
        self.backend = FileTreeBackend(
            input_path,
            leaf_format=self.config.leaf_format,
            logger=self.logger
        )
        self.walker = TreeWalker(input_path, queue_size=self.config.queue_size, logger=self.logger)
        self.register_closer("walker", self.walker.drain)

        try:
            fd = os.open(output_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, self.config.file_mode)
            output = os.fdopen(fd, "wb")
        except OSError as e:
            raise BackendIOError(f"cannot open {output_path}: {e}", context={"path": output_path})
        self.register_closer("output file", output.close)

        self.writer = ArrayStreamWriter(output, logger=self.logger)
        self.register_closer("array writer", self.writer.close)
        self.writer.open()

    def _step(self) -> bool:
        entry = self.walker.next()
        if entry is None:
            return False
        self.count += 1

        try:
            relative = os.path.relpath(entry.path, self.walker.root)
            key = relative_path_to_key(relative)
            record = Record(
                key=add_prefix(key, self.key_prefix),
                value=self.backend.read_leaf(entry.path, key)
            )
            self.check_record(record)
            self.writer.write(record)
        except ProcessingError as e:
            raise self._with_entry(e)

        self.records_written += 1
        self.logger.debug(f"entry {self.count}: {record.key} ({len(record.value)} bytes)")
        return True


class ArrayToTreeEngine(ConversionEngine):
    """
    Import the array format into a directory tree.

    Elements whose key lies outside the key prefix are skipped before their
    value is decoded. The rest have the prefix removed and are written as
    leaf files. A record that fails validation never creates a file.
    """

    operation_name = "array-to-tree"

    reader: ArrayStreamReader
    backend: FileTreeBackend

    def _open(self, input_path: str, output_path: str) -> None:
        self.backend = FileTreeBackend(
            output_path,
            leaf_format=self.config.leaf_format,
            directory_mode=self.config.directory_mode,
            file_mode=self.config.file_mode,
            logger=self.logger
        )
        self.backend.ensure_root()

        try:
            source = open(input_path, "rb")
        except OSError as e:
            raise BackendIOError(f"cannot open {input_path}: {e}", context={"path": input_path})
        self.register_closer("input file", source.close)

        prefix = self.key_prefix
        self.reader = ArrayStreamReader(
            source,
            key_filter=lambda key: has_prefix(key, prefix),
            logger=self.logger
        )
        self.reader.open()

    def _step(self) -> bool:
        try:
            record = self.reader.next()
        finally:
            self.count = self.reader.position
            self.records_skipped = self.reader.skipped
        if record is None:
            return False

        try:
            key = strip_prefix(record.key, self.key_prefix)
            if not key:
                raise FormatError(f"key {record.key!r} is empty once the prefix is removed",
                                  context={"key": record.key})
            record = record.with_key(key)
            self.check_record(record)
            path = self.backend.put(record)
        except ProcessingError as e:
            raise self._with_entry(e)

        self.records_written += 1
        self.logger.debug(f"entry {self.count}: {record.key} -> {path}")
        return True
