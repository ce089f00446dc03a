"""Pytest configuration and fixtures."""

import base64
import json
import os
import pytest
import tempfile
from pathlib import Path
from typing import Dict, List


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def sample_records() -> Dict[str, bytes]:
    """Sample key/value pairs, keyed without any namespace prefix."""
    return {
        "core/keyring": b"\x00\x01\x02keyring",
        "core/master": b"master-key-material",
        "logical/4c2b/foo": b"bar",
        "sys/token/id/h1": "café".encode("utf-8"),
    }


def write_tree(root: Path, records: Dict[str, bytes]) -> None:
    """Lay out records the way the filesystem backend stores them."""
    for key, value in records.items():
        *directories, leaf = key.split("/")
        directory = root.joinpath(*directories)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / f"_{leaf}").write_bytes(value)


def read_tree(root: Path) -> Dict[str, bytes]:
    """Collect every leaf file under root back into key/value pairs."""
    records = {}
    for directory, _, files in os.walk(root):
        for name in files:
            path = Path(directory) / name
            relative = path.relative_to(root)
            key = "/".join(relative.parts[:-1] + (relative.name[1:],))
            records[key] = path.read_bytes()
    return records


def write_array(path: Path, entries: List[Dict[str, str]]) -> None:
    """Write entries as a KV export document."""
    path.write_text(json.dumps(entries, indent=2), encoding="utf-8")


def array_entry(key: str, value: bytes) -> Dict[str, str]:
    return {"Key": key, "Value": base64.b64encode(value).decode("ascii")}


def read_array(path: Path) -> List[Dict[str, str]]:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_tree(temp_dir, sample_records) -> Path:
    """A populated filesystem backend tree."""
    root = temp_dir / "tree"
    root.mkdir()
    write_tree(root, sample_records)
    return root


@pytest.fixture
def sample_array(temp_dir, sample_records) -> Path:
    """A KV export holding sample_records under the ``vault`` prefix."""
    path = temp_dir / "vault.json"
    write_array(path, [array_entry(f"vault/{key}", value) for key, value in sorted(sample_records.items())])
    return path
