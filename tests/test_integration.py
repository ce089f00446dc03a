"""Integration tests for the BackendConverter facade."""

import asyncio
import pytest
from vault_convert import BackendConverter, ConversionConfig, LeafFormat
from vault_convert.types import ErrorType
from conftest import array_entry, read_array, read_tree, write_array, write_tree


class TestBackendConverterIntegration:
    """Integration tests for the complete conversion system."""
    
    def setup_method(self):
        """Set up test fixtures."""
        self.converter = BackendConverter()
    
    def teardown_method(self):
        self.converter.shutdown()
    
    @pytest.mark.asyncio
    async def test_tree_to_array(self, temp_dir, sample_tree, sample_records):
        """Test exporting a tree through the async API."""
        output = temp_dir / "vault.json"
        
        result = await self.converter.tree_to_array(str(sample_tree), str(output))
        
        assert result.success
        assert result.input_path == str(sample_tree)
        assert result.output_path == str(output)
        assert len(read_array(output)) == len(sample_records)
    
    @pytest.mark.asyncio
    async def test_array_to_tree(self, temp_dir, sample_array, sample_records):
        """Test importing an array through the async API."""
        output = temp_dir / "tree"
        
        result = await self.converter.array_to_tree(str(sample_array), str(output))
        
        assert result.success
        assert read_tree(output) == sample_records
    
    @pytest.mark.asyncio
    async def test_round_trip_with_entry_leaves(self, temp_dir, sample_array):
        config = ConversionConfig(leaf_format=LeafFormat.ENTRY)
        tree = temp_dir / "tree"
        exported = temp_dir / "exported.json"
        
        assert (await self.converter.array_to_tree(str(sample_array), str(tree), config)).success
        assert (await self.converter.tree_to_array(str(tree), str(exported), config)).success
        
        assert read_array(exported) == read_array(sample_array)
    
    @pytest.mark.asyncio
    async def test_failure_is_reported_in_result(self, temp_dir):
        """Test that conversion errors are returned, not raised."""
        source = temp_dir / "in.json"
        source.write_text("not json")
        
        result = await self.converter.array_to_tree(str(source), str(temp_dir / "tree"))
        
        assert not result.success
        assert result.error.error_type == ErrorType.FORMAT
        assert result.errors == [str(result.error)]
    
    @pytest.mark.asyncio
    async def test_concurrent_runs(self, temp_dir):
        """Test independent conversions scheduled together."""
        converter = BackendConverter(max_workers=2, enable_profiling=False)
        sources = []
        for i in range(3):
            source = temp_dir / f"in{i}.json"
            write_array(source, [array_entry(f"vault/k{i}/{j}", b"v") for j in range(20)])
            sources.append(source)
        
        try:
            results = await asyncio.gather(*[
                converter.array_to_tree(str(source), str(temp_dir / f"tree{i}"))
                for i, source in enumerate(sources)
            ])
        finally:
            converter.shutdown()
        
        assert all(result.success for result in results)
        for i in range(3):
            assert len(read_tree(temp_dir / f"tree{i}")) == 20
    
    def test_blocking_api(self, temp_dir, sample_tree, sample_records):
        output = temp_dir / "vault.json"
        restored = temp_dir / "restored"
        
        assert self.converter.convert_tree_to_array(str(sample_tree), str(output)).success
        assert self.converter.convert_array_to_tree(str(output), str(restored)).success
        assert read_tree(restored) == sample_records
    
    def test_profiling_records_each_run(self, temp_dir, sample_tree, sample_records):
        """Test that every run adds a profile entry."""
        self.converter.convert_tree_to_array(str(sample_tree), str(temp_dir / "vault.json"))
        
        summary = self.converter.profiler.get_performance_summary()
        
        assert summary["total_operations"] == 1
        assert summary["operations"][0]["name"] == "tree-to-array"
        assert summary["total_records_converted"] == len(sample_records)
    
    def test_large_tree(self, temp_dir):
        """Test a tree with many more leaves than the walk queue holds."""
        records = {f"logical/{i % 7}/{i:05d}": bytes([i % 256]) * 3 for i in range(500)}
        root = temp_dir / "tree"
        write_tree(root, records)
        output = temp_dir / "vault.json"
        
        result = self.converter.convert_tree_to_array(str(root), str(output))
        
        assert result.success
        assert result.records_written == 500
        keys = [entry["Key"] for entry in read_array(output)]
        assert keys == sorted(keys)
