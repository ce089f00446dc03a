"""Main converter facade for both conversion directions."""

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Type

from .engines import ConversionEngine, TreeToArrayEngine, ArrayToTreeEngine
from .error_handler import ErrorHandler
from .profiler import PerformanceProfiler
from .types import ConversionConfig, ConversionResult


class BackendConverter:
    """
    Converts storage backends between the array and tree formats.

    The async methods run the blocking conversion on a worker thread so an
    event loop stays responsive; records inside a run are still handled
    strictly one at a time and in source order.
    """

    def __init__(self, config: Optional[ConversionConfig] = None,
                 logger: Optional[logging.Logger] = None,
                 max_workers: Optional[int] = 1,
                 enable_profiling: bool = True):
        """
        Initialize the converter.

        Args:
            config: Default conversion settings
            logger: Optional logger instance
            max_workers: Worker threads for async runs; keep at 1 when profiling,
                since the profiler tracks one run at a time
            enable_profiling: Record duration and memory for each run
        """
        self.config = config or ConversionConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.executor = ThreadPoolExecutor(max_workers=max_workers)
        self.error_handler = ErrorHandler(self.logger)
        self.profiler = PerformanceProfiler(self.logger) if enable_profiling else None

    async def tree_to_array(self, input_dir: str, output_file: str,
                            config: Optional[ConversionConfig] = None) -> ConversionResult:
        """
        Export a directory tree into a single array-format file.

        Args:
            input_dir: Root of the tree backend
            output_file: Array file to create or overwrite
            config: Optional settings overriding the converter defaults

        Returns:
            ConversionResult with operation details
        """
        return await self._run_async(TreeToArrayEngine, input_dir, output_file, config)

    async def array_to_tree(self, input_file: str, output_dir: str,
                            config: Optional[ConversionConfig] = None) -> ConversionResult:
        """
        Import an array-format file into a directory tree.

        Args:
            input_file: Array file to read
            output_dir: Root of the tree backend, created if missing
            config: Optional settings overriding the converter defaults

        Returns:
            ConversionResult with operation details
        """
        return await self._run_async(ArrayToTreeEngine, input_file, output_dir, config)

    def convert_tree_to_array(self, input_dir: str, output_file: str,
                              config: Optional[ConversionConfig] = None) -> ConversionResult:
        """Blocking variant of tree_to_array()."""
        return self._run(TreeToArrayEngine, input_dir, output_file, config)

    def convert_array_to_tree(self, input_file: str, output_dir: str,
                              config: Optional[ConversionConfig] = None) -> ConversionResult:
        """Blocking variant of array_to_tree()."""
        return self._run(ArrayToTreeEngine, input_file, output_dir, config)

    def shutdown(self) -> None:
        """Release the worker threads."""
        self.executor.shutdown(wait=True)

    async def _run_async(self, engine_class: Type[ConversionEngine], input_path: str,
                         output_path: str, config: Optional[ConversionConfig]) -> ConversionResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.executor, self._run, engine_class, input_path, output_path, config
        )

    def _run(self, engine_class: Type[ConversionEngine], input_path: str,
             output_path: str, config: Optional[ConversionConfig]) -> ConversionResult:
        engine = engine_class(
            config=config or self.config,
            error_handler=self.error_handler,
            logger=self.logger,
            profiler=self.profiler
        )

        if not self.profiler:
            return engine.convert_all(input_path, output_path)

        with self.profiler.profile_operation(engine.operation_name, _size_of(input_path)):
            result = engine.convert_all(input_path, output_path)
            self.profiler.stop_profiling(
                output_size=_size_of(output_path),
                records_converted=result.records_written
            )
        return result


def _size_of(path: str) -> int:
    """Total size in bytes of a file or of every regular file under a directory."""
    try:
        if not os.path.isdir(path):
            return os.path.getsize(path)
    except OSError:
        return 0

    total = 0
    for directory, _, files in os.walk(path):
        for name in files:
            try:
                total += os.path.getsize(os.path.join(directory, name))
            except OSError:
                continue
    return total
