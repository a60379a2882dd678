"""File operations and duplicate group management services."""

from .file_service import FileService, ShellActionsImpl
from .duplicate_service import DuplicateService

__all__ = ["FileService", "ShellActionsImpl", "DuplicateService"]
