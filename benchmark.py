#!/usr/bin/env python3
"""
Benchmark suite for vault-convert.

Runs both conversion directions over trees of growing size. Streaming
conversions should show throughput that holds steady and a peak memory
that does not grow with the record count.
"""

import asyncio
import statistics
import tempfile
from pathlib import Path
from typing import Any, Dict, List
from src.vault_convert import BackendConverter, ConversionConfig


class BenchmarkSuite:
    """Benchmark suite for vault-convert."""
    
    def __init__(self, iterations: int = 3):
        """Initialize the benchmark suite."""
        self.iterations = iterations
    
    @staticmethod
    def create_tree(root: Path, record_count: int, value_size: int = 256) -> None:
        """Create a tree with record_count leaves spread over nested directories."""
        for i in range(record_count):
            directory = root / "logical" / f"{i % 16:02x}" / f"{(i // 16) % 16:02x}"
            directory.mkdir(parents=True, exist_ok=True)
            (directory / f"_{i:08d}").write_bytes(bytes([i % 256]) * value_size)
    
    async def benchmark_record_counts(self, counts: List[int]) -> Dict[str, Any]:
        """Benchmark both directions for each tree size."""
        print("📊 Benchmarking record counts...")
        results = {}
        
        for count in counts:
            print(f"   Testing {count} records...")
            export_times, import_times, memory_peaks = [], [], []
            
            for _ in range(self.iterations):
                with tempfile.TemporaryDirectory() as temp_dir:
                    tree = Path(temp_dir) / "tree"
                    array = Path(temp_dir) / "vault.json"
                    self.create_tree(tree, count)
                    
                    converter = BackendConverter(config=ConversionConfig())
                    try:
                        exported = await converter.tree_to_array(str(tree), str(array))
                        imported = await converter.array_to_tree(str(array), str(Path(temp_dir) / "restored"))
                    finally:
                        converter.shutdown()
                    
                    if not (exported.success and imported.success):
                        print(f"   ❌ Run failed: {exported.error or imported.error}")
                        continue
                    
                    export_metrics, import_metrics = converter.profiler.metrics_history
                    export_times.append(export_metrics.duration)
                    import_times.append(import_metrics.duration)
                    memory_peaks.append(max(export_metrics.memory_peak_mb, import_metrics.memory_peak_mb))
            
            if export_times:
                results[str(count)] = {
                    "export_time": statistics.mean(export_times),
                    "import_time": statistics.mean(import_times),
                    "export_rps": count / statistics.mean(export_times),
                    "import_rps": count / statistics.mean(import_times),
                    "memory_peak_mb": max(memory_peaks),
                }
        
        return results
    
    def print_results(self, results: Dict[str, Any], title: str):
        """Print benchmark results in a formatted table."""
        print(f"\n📈 {title}")
        print("=" * 80)
        
        if not results:
            print("No results to display.")
            return
        
        columns = list(next(iter(results.values())).keys())
        header = f"{'Records':<12}" + "".join(f"{col:<16}" for col in columns)
        print(header)
        print("-" * len(header))
        
        for label, data in results.items():
            row = f"{label:<12}"
            for col in columns:
                value = data.get(col, 0)
                if col.endswith("_time"):
                    row += f"{value:<16.3f}"
                else:
                    row += f"{value:<16.1f}"
            print(row)


async def main():
    """Run the benchmarks."""
    suite = BenchmarkSuite()
    results = await suite.benchmark_record_counts([100, 1000, 5000])
    suite.print_results(results, "Conversion throughput by record count")


if __name__ == "__main__":
    asyncio.run(main())
