"""Data models for vault-convert."""

from .record import Record
from .walk_entry import WalkEntry

__all__ = ["Record", "WalkEntry"]
