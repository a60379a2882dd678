"""
DupFile — duplicate file finder with a persistent checksum index and a safe quarantine.

Core features:
- Exact duplicates only: files are grouped by a SHA-256 of their full content
- Quick scan skips files whose size is unique among candidates
- Redundant copies are moved to a quarantine folder and can be restored
- CLI for headless usage, optional Qt worker (install with [gui] extra)
"""

from importlib.metadata import PackageNotFoundError, version as _version

try:
    __version__ = _version("dupfile")
except PackageNotFoundError:
    # Running from a source checkout without installation
    __version__ = "0.0.0"

# Public API — only what users should import directly
from dupfile.commands import ScanCommand
from dupfile.config import AppPaths, ScanConfig
from dupfile.core import (
    ScanCoordinator, QuarantineManager, ScanParams, ScanSession, ScanStatus,
    DuplicateGroup, FileRecord, QuarantineRecord)
from dupfile.utils.convert_utils import ConvertUtils
from dupfile.services import DuplicateService, FileService

__all__ = [
    "ScanCommand",
    "AppPaths",
    "ScanConfig",
    "ScanCoordinator",
    "QuarantineManager",
    "ScanParams",
    "ScanSession",
    "ScanStatus",
    "DuplicateGroup",
    "FileRecord",
    "QuarantineRecord",
    "ConvertUtils",
    "DuplicateService",
    "FileService",
    "__version__",
]
