"""I/O utilities for vault-convert."""

from .file_tree import FileTreeBackend

__all__ = ["FileTreeBackend"]
