"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/errors.py
Error taxonomy shared by the scanning and quarantine engine.

Only StoreError is fatal to a scan session. Everything else resolves to a skip
decision or a per-file warning and never escapes the component that raised it.
"""

from typing import Optional


class DupFileError(RuntimeError):
    """Base class for all engine errors."""


class TransientFileError(DupFileError):
    """A file was unreadable, locked or vanished while being hashed or moved."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"File unavailable: {path}")


class WalkError(DupFileError):
    """A directory could not be listed during enumeration."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Cannot list directory: {path}")


class StoreError(DupFileError):
    """The persistent checksum index is unavailable or corrupt."""


class QuarantineMoveError(DupFileError):
    """A duplicate could not be moved into (or out of) quarantine."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Cannot move file: {path}")


class CancellationRequested(DupFileError):
    """Raised inside the pipeline to unwind to the coordinator after cancel()."""


class InvalidTransition(DupFileError):
    """The scan state machine has no transition for this event in this state."""
