"""Directory-tree storage layout used by the filesystem backend."""

import base64
import binascii
import json
import logging
import os
from typing import List, Optional

from ..models import Record
from ..types import LeafFormat, BackendIOError, FormatError, NotFoundError
from ..utils.keys import LEAF_MARKER, KEY_SEPARATOR, key_segments, key_to_relative_path


class FileTreeBackend:
    """
    One-file-per-record storage under a root directory.

    A record with key ``a/b/c`` lives in ``<root>/a/b/_c``. Directories are
    created owner-only and leaf files owner read-write; a leaf is always
    truncated and rewritten, never appended to.
    """

    def __init__(self, root: str,
                 leaf_format: LeafFormat = LeafFormat.RAW,
                 directory_mode: int = 0o700,
                 file_mode: int = 0o600,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the backend.

        Args:
            root: Root directory of the tree
            leaf_format: How values are encoded inside leaf files
            directory_mode: Permission bits for created directories
            file_mode: Permission bits for created leaf files
            logger: Optional logger instance
        """
        self.root = os.path.normpath(root)
        self.leaf_format = leaf_format
        self.directory_mode = directory_mode
        self.file_mode = file_mode
        self.logger = logger or logging.getLogger(__name__)

    def ensure_root(self) -> None:
        """
        Create the root directory if needed and restrict its permissions.

        Raises:
            BackendIOError: If the root cannot be created
        """
        self._ensure_directory_exists(self.root)
        try:
            os.chmod(self.root, self.directory_mode)
        except OSError as e:
            raise BackendIOError(f"cannot set permissions on {self.root}: {e}",
                                 context={"path": self.root})

    def path_for_key(self, key: str) -> str:
        """Leaf file path for a key."""
        return os.path.join(self.root, key_to_relative_path(key))

    def put(self, record: Record) -> str:
        """
        Write a record to its leaf file.

        The leaf contents are encoded before any directory or file is
        created, so an unencodable record leaves no trace on disk.

        Returns:
            Path of the written leaf file
        """
        path = self.path_for_key(record.key)
        data = self.encode_leaf(record)

        self._ensure_directory_exists(os.path.dirname(path))
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, self.file_mode)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError as e:
            raise BackendIOError(f"cannot write {path}: {e}",
                                 context={"path": path, "key": record.key})

        self.logger.debug(f"Wrote {len(data)} bytes for key {record.key!r} to {path}")
        return path

    def get(self, key: str) -> Record:
        """
        Read the record stored under a key.

        Raises:
            NotFoundError: If no leaf exists for the key
        """
        path = self.path_for_key(key)
        if not os.path.isfile(path):
            raise NotFoundError(f"no value at {key}", context={"key": key, "path": path})
        return Record(key=key, value=self.read_leaf(path, key))

    def list(self, prefix: str = "") -> List[str]:
        """
        List the children of a key prefix.

        Leaves are returned by key segment and sub-directories with a
        trailing ``/``, sorted. A prefix with no directory behind it lists
        as empty.
        """
        directory = self.root
        trimmed = prefix.strip(KEY_SEPARATOR)
        if trimmed:
            directory = os.path.join(self.root, *key_segments(trimmed))

        try:
            with os.scandir(directory) as iterator:
                entries = list(iterator)
        except (FileNotFoundError, NotADirectoryError):
            return []
        except OSError as e:
            raise BackendIOError(f"cannot list {directory}: {e}", context={"path": directory})

        names = []
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                names.append(entry.name + KEY_SEPARATOR)
            elif entry.name.startswith(LEAF_MARKER) and len(entry.name) > len(LEAF_MARKER):
                names.append(entry.name[len(LEAF_MARKER):])
        return sorted(names)

    def read_leaf(self, path: str, key: str) -> bytes:
        """
        Read and decode one leaf file.

        Args:
            path: Leaf file path
            key: Key derived from the path, checked against ``entry`` leaves

        Returns:
            Raw value bytes
        """
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise BackendIOError(f"cannot read {path}: {e}", context={"path": path, "key": key})
        return self.decode_leaf(data, key)

    def encode_leaf(self, record: Record) -> bytes:
        """Serialise a record in the configured leaf format."""
        if self.leaf_format == LeafFormat.RAW:
            return record.value
        return (json.dumps(record.to_array_entry(), ensure_ascii=False) + "\n").encode("utf-8")

    def decode_leaf(self, data: bytes, key: str) -> bytes:
        """Recover value bytes from leaf contents in the configured format."""
        if self.leaf_format == LeafFormat.RAW:
            return data

        try:
            entry = json.loads(data.decode("utf-8"))
        except ValueError as e:
            raise FormatError(f"leaf for key {key!r} is not a JSON entry: {e}", context={"key": key})

        if not isinstance(entry, dict):
            raise FormatError(f"leaf for key {key!r} is not a JSON object", context={"key": key})
        if entry.get("Key") != key:
            raise FormatError(f"leaf for key {key!r} holds key {entry.get('Key')!r}",
                              context={"key": key})

        encoded = entry.get("Value")
        if encoded is None:
            return b""
        if not isinstance(encoded, str):
            raise FormatError(f"leaf for key {key!r} has a non-string Value", context={"key": key})
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise FormatError(f"leaf for key {key!r} has illegal base64 data: {e}",
                              context={"key": key})

    def _ensure_directory_exists(self, directory: str) -> None:
        """
        Create a directory and any missing parents with directory_mode.

        Raises:
            BackendIOError: If a directory cannot be created
        """
        missing = []
        current = directory
        while current and not os.path.isdir(current):
            missing.append(current)
            parent = os.path.dirname(current)
            if parent == current:
                break
            current = parent

        for path in reversed(missing):
            try:
                os.mkdir(path, self.directory_mode)
            except FileExistsError:
                if not os.path.isdir(path):
                    raise BackendIOError(f"cannot create directory {path}: a file is in the way",
                                         context={"path": path})
            except OSError as e:
                raise BackendIOError(f"cannot create directory {path}: {e}", context={"path": path})
