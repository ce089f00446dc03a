"""Walk entry model produced by the tree walker."""

from dataclasses import dataclass


@dataclass(frozen=True)
class WalkEntry:
    """A filesystem object discovered during a tree walk."""
    
    path: str
    is_directory: bool = False
