"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the scanning engine.
These protocols enforce structural typing using Python's `typing.Protocol` so the
coordinator and quarantine manager can be driven by fakes in tests.

Key Components:
---------------
- Walker: Lazily enumerates file paths under a root.
- ChecksumEngine: Computes a content hash for one file, off the coordinator thread.
- DuplicateStore: Persistent path-keyed index of hashed files.
- ShellActions: OS integration supplied by the host application (chooser, reveal, open).
"""

from concurrent.futures import Future
from typing import Callable, Iterator, List, Optional, Protocol

from dupfile.core.models import DuplicateGroup, FileRecord


# ===== Interfaces =====

class HashAlgorithm(Protocol):
    """
    Interface for streaming hash algorithms.

    new() returns a fresh hashlib-style object exposing update() and hexdigest().
    """
    name: str

    def new(self): ...


class Walker(Protocol):
    """Interface for enumerating candidate files."""
    def walk(
        self,
        root_dir: str,
        stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Iterator[str]:
        """
        Yield file paths under root_dir, recursively, never following symlinks.

        Args:
            root_dir: Directory to enumerate.
            stopped_flag: Function that returns True if enumeration should stop.
        """
        ...


class ChecksumEngine(Protocol):
    """
    Interface for content hashing.

    compute_checksum never raises for I/O problems: it returns None (the failure
    marker) so the caller can skip the file.
    """
    def compute_checksum(self, path: str) -> Optional[str]: ...

    def submit(self, path: str) -> "Future[Optional[str]]": ...

    def close(self) -> None: ...


class DuplicateStore(Protocol):
    """Interface for the persistent checksum index."""
    def upsert(self, record: FileRecord) -> None: ...

    def clear(self, root: Optional[str] = None) -> int: ...

    def remove(self, path: str) -> bool: ...

    def get(self, path: str) -> Optional[FileRecord]: ...

    def duplicate_groups(self, root: Optional[str] = None) -> List[DuplicateGroup]: ...

    def duplicate_count(self, root: Optional[str] = None) -> int: ...


class ShellActions(Protocol):
    """
    Side-effecting OS integration provided by the host.
    Every call reports success as a bool and never raises.
    """
    def choose_directory(self) -> Optional[str]: ...

    def reveal_folder(self, path: str) -> bool: ...

    def open_file(self, path: str) -> bool: ...
