"""Tests for the background tree walker."""

import os
import time
import pytest
from pathlib import Path
from vault_convert.walker import TreeWalker
from vault_convert.types import BackendIOError


def make_files(root: Path, *relative_paths: str) -> None:
    for relative in relative_paths:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x")


def walked(walker: TreeWalker, root: Path):
    return [os.path.relpath(entry.path, root) for entry in walker]


class TestTreeWalker:
    """Tests for TreeWalker class."""
    
    def test_walk_order(self, temp_dir):
        """Test lexicographic, depth-first ordering."""
        make_files(temp_dir, "b/_1", "a/_2", "a/_1", "_z", "a/c/_x")
        
        with TreeWalker(str(temp_dir)) as walker:
            paths = walked(walker, temp_dir)
        
        assert paths == [
            os.path.join("_z"),
            os.path.join("a", "_1"),
            os.path.join("a", "_2"),
            os.path.join("a", "c", "_x"),
            os.path.join("b", "_1"),
        ]
    
    def test_ordering_uses_byte_order(self, temp_dir):
        """Test that uppercase sorts before lowercase."""
        make_files(temp_dir, "_b", "_B", "_a")
        
        with TreeWalker(str(temp_dir)) as walker:
            assert walked(walker, temp_dir) == ["_B", "_a", "_b"]
    
    def test_empty_tree(self, temp_dir):
        walker = TreeWalker(str(temp_dir))
        
        assert walker.next() is None
        assert walker.next() is None
        assert walker.error is None
        walker.drain()
    
    def test_directories_are_not_yielded(self, temp_dir):
        (temp_dir / "empty" / "nested").mkdir(parents=True)
        make_files(temp_dir, "d/_leaf")
        
        with TreeWalker(str(temp_dir)) as walker:
            entries = list(walker)
        
        assert [entry.is_directory for entry in entries] == [False]
        assert entries[0].path.endswith("_leaf")
    
    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlinks_are_skipped(self, temp_dir):
        """Test that symlinks to files and directories are not followed."""
        make_files(temp_dir, "real/_a")
        os.symlink(temp_dir / "real" / "_a", temp_dir / "_link")
        os.symlink(temp_dir / "real", temp_dir / "linked")
        
        with TreeWalker(str(temp_dir)) as walker:
            assert walked(walker, temp_dir) == [os.path.join("real", "_a")]
    
    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="fifos not supported")
    def test_non_regular_files_are_skipped(self, temp_dir):
        make_files(temp_dir, "_a")
        os.mkfifo(temp_dir / "_pipe")
        
        with TreeWalker(str(temp_dir)) as walker:
            assert walked(walker, temp_dir) == ["_a"]
    
    def test_missing_root_reports_error_once(self, temp_dir):
        """Test that a traversal error surfaces once, after exhaustion."""
        walker = TreeWalker(str(temp_dir / "missing"))
        
        with pytest.raises(BackendIOError, match="walk of"):
            walker.next()
        assert walker.next() is None
        assert isinstance(walker.error, BackendIOError)
        walker.drain()
    
    def test_bounded_queue_throttles_producer(self, temp_dir):
        """Test that the producer blocks once the queue is full."""
        make_files(temp_dir, *[f"_{i:03d}" for i in range(20)])
        
        walker = TreeWalker(str(temp_dir), queue_size=2)
        time.sleep(0.2)
        
        assert walker.is_alive()
        assert walker._results.qsize() <= 2
        assert len(list(walker)) == 20
        walker.drain(timeout=5)
        assert not walker.is_alive()
    
    def test_early_stop_does_not_deadlock(self, temp_dir):
        """Test that stopping with a full queue terminates the producer."""
        make_files(temp_dir, *[f"d{i}/_{j}" for i in range(10) for j in range(10)])
        
        walker = TreeWalker(str(temp_dir), queue_size=1)
        first = walker.next()
        assert first is not None
        
        walker.drain(timeout=5)
        
        assert not walker.is_alive()
        assert walker.stopped
        assert walker.error is None
        assert walker.next() is None
    
    def test_stop_is_idempotent(self, temp_dir):
        make_files(temp_dir, "_a", "_b")
        walker = TreeWalker(str(temp_dir))
        
        walker.stop()
        walker.stop()
        
        # Entries queued before the stop may still be returned; then the walk ends.
        remaining = list(walker)
        assert len(remaining) <= 2
        walker.drain(timeout=5)
        assert not walker.is_alive()
    
    def test_invalid_queue_size(self, temp_dir):
        with pytest.raises(ValueError):
            TreeWalker(str(temp_dir), queue_size=0)
    
    def test_error_after_entries(self, temp_dir, monkeypatch):
        """Test that entries found before a failure come out before the error."""
        make_files(temp_dir, "a/_1", "b/_1", "c/_1")
        sorted_entries = TreeWalker._sorted_entries
        
        def unreadable_b(directory):
            if os.path.basename(directory) == "b":
                raise PermissionError(13, "Permission denied", directory)
            return sorted_entries(directory)
        
        monkeypatch.setattr(TreeWalker, "_sorted_entries", staticmethod(unreadable_b))
        walker = TreeWalker(str(temp_dir), queue_size=1)
        
        first = walker.next()
        assert os.path.relpath(first.path, temp_dir) == os.path.join("a", "_1")
        with pytest.raises(BackendIOError, match="Permission denied"):
            walker.next()
        assert walker.next() is None
        
        walker.drain(timeout=5)
        assert not walker.is_alive()
