"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models and domain logic for scanning, duplicate classification and quarantine.
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Tuple

from dupfile.core.errors import InvalidTransition


# =============================
# Enums
# =============================

class ScanStatus(Enum):
    """
    Lifecycle of one scan session.
    """
    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def display_name(self) -> str:
        """Human-readable name for UI display."""
        mapping = {
            ScanStatus.IDLE: "Idle",
            ScanStatus.SCANNING: "Scanning",
            ScanStatus.COMPLETED: "Completed",
            ScanStatus.CANCELLED: "Cancelled",
            ScanStatus.ERROR: "Error",
        }
        return mapping.get(self, self.value)

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.CANCELLED, ScanStatus.ERROR)

    def __repr__(self) -> str:
        return self.value


class ScanEvent(Enum):
    START = "start"
    CANCEL = "cancel"
    ALL_PROCESSED = "all-processed"
    STORE_FAILURE = "store-failure"


class Stage(str, Enum):
    ENUMERATING = "Enumerating"
    SIZE = "Size grouping"
    HASHING = "Hashing"
    FINISHED = "Finished"


_TRANSITIONS = {
    (ScanStatus.IDLE, ScanEvent.START): ScanStatus.SCANNING,
    (ScanStatus.SCANNING, ScanEvent.CANCEL): ScanStatus.CANCELLED,
    (ScanStatus.SCANNING, ScanEvent.ALL_PROCESSED): ScanStatus.COMPLETED,
    (ScanStatus.SCANNING, ScanEvent.STORE_FAILURE): ScanStatus.ERROR,
    (ScanStatus.COMPLETED, ScanEvent.START): ScanStatus.SCANNING,
    (ScanStatus.CANCELLED, ScanEvent.START): ScanStatus.SCANNING,
    (ScanStatus.ERROR, ScanEvent.START): ScanStatus.SCANNING,
}


def transition(status: ScanStatus, event: ScanEvent) -> ScanStatus:
    """
    Pure transition function of the scan state machine.
    Raises InvalidTransition for pairs the machine does not define
    (e.g. starting while a scan is running, cancelling an idle coordinator).
    """
    try:
        return _TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransition(f"Cannot apply '{event.value}' while {status.value}") from None


# ======================
#  Core Data Models
# ======================

@dataclass(frozen=True)
class Candidate:
    """A walked file with the metadata needed before hashing."""
    path: str
    size: int
    modified_time: float

    @property
    def name(self) -> str:
        return os.path.basename(self.path)


@dataclass
class FileRecord:
    """
    One hashed file as it is kept in the checksum index.
    The path is the identity: re-scanning a path replaces its record.
    """
    path: str
    size: int  # in bytes
    modified_time: float
    checksum: str
    name: Optional[str] = None

    def __post_init__(self):
        if self.name is None:
            self.name = os.path.basename(self.path)

    def __repr__(self):
        return f"<FileRecord path={self.path}, size={self.size}>"


def representative_key(record: FileRecord) -> Tuple[float, str]:
    """Oldest modification time first, lexical path order on ties."""
    return record.modified_time, record.path


@dataclass
class DuplicateGroup:
    """
    Two or more records sharing one checksum.
    Files are kept ordered by representative_key, so files[0] is the original to keep.
    """
    checksum: str
    files: List[FileRecord]

    def __post_init__(self):
        if len(self.files) < 2:
            raise ValueError("A duplicate group needs at least two files")
        for f in self.files:
            if f.checksum != self.checksum:
                raise ValueError(f"Checksum mismatch for {f.path}")
        self.files = sorted(self.files, key=representative_key)

    @property
    def count(self) -> int:
        return len(self.files)

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files)

    @property
    def size(self) -> int:
        """Size of one copy."""
        return self.files[0].size

    @property
    def representative(self) -> FileRecord:
        return self.files[0]

    @property
    def redundant_files(self) -> List[FileRecord]:
        return self.files[1:]

    @property
    def reclaimable_size(self) -> int:
        return sum(f.size for f in self.redundant_files)

    def __repr__(self):
        return f"<DuplicateGroup checksum={self.checksum[:12]}, count={self.count}>"


@dataclass(frozen=True)
class ScanSession:
    """
    Immutable snapshot of a scan session.
    The coordinator publishes a new snapshot on every change; observers never mutate it.
    """
    root_path: str = ""
    extension_filter: FrozenSet[str] = frozenset()
    quick_scan_enabled: bool = True
    status: ScanStatus = ScanStatus.IDLE
    stage: str = ""
    processed: int = 0
    total: int = 0
    current_file: str = ""
    duplicate_count: int = 0
    error_message: Optional[str] = None

    @property
    def progress(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.processed / self.total

    def apply(self, event: ScanEvent, **changes) -> "ScanSession":
        """Returns a new snapshot moved along the state machine."""
        return replace(self, status=transition(self.status, event), **changes)

    def update(self, **changes) -> "ScanSession":
        return replace(self, **changes)


@dataclass
class QuarantineRecord:
    """
    A file sitting in the quarantine area.
    original_path is only known for records produced by a move in this process;
    entries reconstructed from the quarantine folder carry None.
    """
    quarantine_path: str
    original_path: Optional[str] = None
    moved_at: float = 0.0
    size: int = 0
    checksum: Optional[str] = None

    @property
    def name(self) -> str:
        return os.path.basename(self.quarantine_path)


@dataclass
class QuarantineGroup:
    """Quarantined files sharing one checksum (display only, singletons allowed)."""
    checksum: str
    records: List[QuarantineRecord]

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def total_size(self) -> int:
        return sum(r.size for r in self.records)


@dataclass
class QuarantineReport:
    """Outcome of quarantining the redundant members of one group."""
    kept: Optional[FileRecord] = None
    moved: List[QuarantineRecord] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def bytes_moved(self) -> int:
        return sum(r.size for r in self.moved)

    @property
    def ok(self) -> bool:
        return not self.failed


"""
DTO for scan parameters with built-in validation.
Interface-agnostic — used by both GUI and CLI.
"""

def normalize_extensions(extensions: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Lowercase, leading dot, blanks dropped: ['JPG', '.png', ''] -> {'.jpg', '.png'}."""
    normalized = set()
    for ext in extensions or []:
        ext = ext.strip().lower()
        if ext and not ext.startswith('.'):
            ext = f".{ext}"
        if ext:
            normalized.add(ext)
    return frozenset(normalized)


@dataclass
class ScanParams:
    """Parameters for one scan with validation."""
    root_dir: str
    extensions: FrozenSet[str] = frozenset()
    quick_scan: bool = True
    quick_scan_threshold: int = 100
    workers: int = 1

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if not self.root_dir:
            raise ValueError("Root directory cannot be empty")

        if self.quick_scan_threshold < 0:
            raise ValueError("Quick scan threshold cannot be negative")

        if self.workers < 1:
            raise ValueError("At least one hashing worker is required")

        self.root_dir = os.path.abspath(os.path.expanduser(self.root_dir))
        self.extensions = normalize_extensions(self.extensions)

    @staticmethod
    def from_human_readable(
            root_dir: str,
            extensions_str: str = "",
            quick_scan: bool = True,
            quick_scan_threshold: int = 100,
            workers: int = 1,
    ) -> 'ScanParams':
        """
        Factory method to create params from human-readable inputs.
        Useful for CLI argument parsing or GUI input conversion.
        """
        ext_list = [
            ext.strip() for ext in extensions_str.split(",") if ext.strip()
        ] if extensions_str else []

        return ScanParams(
            root_dir=root_dir,
            extensions=frozenset(ext_list),
            quick_scan=quick_scan,
            quick_scan_threshold=quick_scan_threshold,
            workers=workers,
        )
