"""
Core engine: walker, size pruning, content hashing, checksum index, scan state
machine and quarantine.

- FileSystemWalker: lazy recursive enumeration that never follows symlinks
- SizeIndexer: quick-scan pruning of files with a unique size
- ChecksumEngineImpl + SHA256AlgorithmImpl: streaming SHA-256 on a worker pool
- SQLiteDuplicateStore: path-keyed checksum index, derives duplicate groups
- ScanCoordinator: Idle/Scanning/Completed/Cancelled/Error pipeline with snapshots
- QuarantineManager: moves redundant copies aside and restores them

No GUI dependencies; shared by the CLI and the Qt worker.
"""

from .scanner import FileSystemWalker
from .grouper import SizeIndexer
from .hasher import ChecksumEngineImpl, SHA256AlgorithmImpl, HASH_FAILED
from .store import SQLiteDuplicateStore, get_store, close_store
from .coordinator import ScanCoordinator
from .quarantine import QuarantineManager
from .errors import (
    DupFileError, TransientFileError, WalkError, StoreError, QuarantineMoveError,
    CancellationRequested, InvalidTransition)
from .models import (
    Candidate, FileRecord, DuplicateGroup, ScanStatus, ScanEvent, Stage, ScanSession, ScanParams,
    QuarantineRecord, QuarantineGroup, QuarantineReport, transition)

__all__ = [
    "FileSystemWalker",
    "SizeIndexer",
    "ChecksumEngineImpl",
    "SHA256AlgorithmImpl",
    "HASH_FAILED",
    "SQLiteDuplicateStore",
    "get_store",
    "close_store",
    "ScanCoordinator",
    "QuarantineManager",
    "DupFileError",
    "TransientFileError",
    "WalkError",
    "StoreError",
    "QuarantineMoveError",
    "CancellationRequested",
    "InvalidTransition",
    "Candidate",
    "FileRecord",
    "DuplicateGroup",
    "ScanStatus",
    "ScanEvent",
    "Stage",
    "ScanSession",
    "ScanParams",
    "QuarantineRecord",
    "QuarantineGroup",
    "QuarantineReport",
    "transition",
]
