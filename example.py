#!/usr/bin/env python3
"""
Example usage of vault-convert.

Builds a small filesystem backend tree, exports it to a Consul KV export
document and imports that document back into a fresh tree.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from src.vault_convert import BackendConverter, ConversionConfig


SAMPLE_RECORDS = {
    "core/keyring": b"\x00\x01\x02\x03keyring-bytes",
    "core/master": b"encrypted-master-key",
    "core/mounts": b'{"entries": []}',
    "logical/4c2b7f3e/secret/app": b'{"password": "hunter2"}',
    "sys/token/id/h7b8c9": b"token-entry",
}


def build_tree(root: Path) -> None:
    """Lay out SAMPLE_RECORDS the way the filesystem backend does."""
    for key, value in SAMPLE_RECORDS.items():
        *directories, leaf = key.split("/")
        directory = root.joinpath(*directories)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / f"_{leaf}").write_bytes(value)


async def main():
    """Main example function."""
    print("Vault Convert Example")
    print("=" * 50)
    
    converter = BackendConverter(config=ConversionConfig(key_prefix="vault"))
    
    with tempfile.TemporaryDirectory() as temp_dir:
        tree = Path(temp_dir) / "file-backend"
        array = Path(temp_dir) / "vault.json"
        restored = Path(temp_dir) / "restored"
        build_tree(tree)
        
        try:
            print(f"Exporting {tree} -> {array}")
            result = await converter.tree_to_array(str(tree), str(array))
            if not result.success:
                print(f"❌ Export failed: {result.error}")
                return
            
            print(f"✅ Exported {result.records_written} records")
            print(f"\nSample of the array document:\n{array.read_text()[:300]}...\n")
            
            # Foreign keys are skipped on import.
            entries = json.loads(array.read_text())
            entries.append({"Key": "consul/service/web", "Flags": 0, "Value": "d2Vi"})
            array.write_text(json.dumps(entries, indent=2))
            
            print(f"Importing {array} -> {restored}")
            result = await converter.array_to_tree(str(array), str(restored))
            if not result.success:
                print(f"❌ Import failed: {result.error}")
                return
            
            print(f"✅ Imported {result.records_written} records, skipped {result.records_skipped}")
            print("\nRestored leaf files:")
            for directory, _, files in sorted(os.walk(restored)):
                for name in sorted(files):
                    path = Path(directory) / name
                    print(f"   {path.relative_to(restored)} ({path.stat().st_size} bytes)")
            
            if converter.profiler:
                summary = converter.profiler.get_performance_summary()
                print(f"\nRuns profiled: {summary['total_operations']}, "
                      f"peak memory {summary['max_memory_peak_mb']:.1f} MB")
        finally:
            converter.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
