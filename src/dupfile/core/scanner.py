"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Implements lazy directory enumeration.
Features:
- Depth-first traversal with os.scandir, one directory listing at a time
- Symbolic links are never followed (no cycles, no double counting)
- Unreadable directories and vanished entries are skipped, never fatal
- Extension allow-set and excluded directories
- Cancellation checked between entries
"""

import os
import sys
import logging
from typing import Callable, FrozenSet, Iterable, Iterator, List, Optional

from dupfile.core.errors import WalkError
from dupfile.core.models import normalize_extensions
from dupfile.core.interfaces import Walker

logger = logging.getLogger(__name__)


class FileSystemWalker(Walker):
    """
    Enumerates regular files under a root directory.
    Every call to walk() starts a fresh traversal, so one walker can be reused.

    Attributes:
        extensions: Allowed file extensions (e.g. {".txt", ".jpg"}); empty means all
        excluded_dirs: Directories whose subtrees are never entered
    """

    def __init__(
        self,
        extensions: Optional[Iterable[str]] = None,
        excluded_dirs: Optional[List[str]] = None
    ):
        self.extensions: FrozenSet[str] = normalize_extensions(extensions)
        self.excluded_dirs = [os.path.normcase(os.path.abspath(d)) for d in excluded_dirs or []]
        self.skipped_dirs: List[str] = []

    def walk(
        self,
        root_dir: str,
        stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Iterator[str]:
        """
        Yield absolute paths of regular files under root_dir that pass the extension filter.
        """
        root = os.path.abspath(root_dir)
        self.skipped_dirs = []
        logger.debug(f"Walking {root} (extensions={sorted(self.extensions) or 'all'})")

        if not os.path.isdir(root):
            logger.warning(f"Not a directory, nothing to scan: {root}")
            return

        pending = [root]
        while pending:
            if stopped_flag and stopped_flag():
                logger.debug("Walk interrupted by user")
                return

            current = pending.pop()
            try:
                listing = self._list_dir(current)
            except WalkError as e:
                logger.debug(f"Skipping subtree: {e}")
                self.skipped_dirs.append(current)
                continue

            subdirs = []
            for entry in listing:
                if stopped_flag and stopped_flag():
                    logger.debug("Walk interrupted by user")
                    return
                try:
                    if entry.is_symlink():
                        logger.debug(f"Skipping symbolic link: {entry.path}")
                        continue
                    if entry.is_dir(follow_symlinks=False):
                        if self._prefilter_dir(entry.path):
                            subdirs.append(entry.path)
                        continue
                    if not entry.is_file(follow_symlinks=False):
                        continue
                except OSError as e:
                    logger.debug(f"Skipping vanished entry {entry.path}: {e}")
                    continue

                if self._extension_passes(entry.name):
                    yield entry.path

            # Reverse so the stack pops subdirectories in listing order
            pending.extend(reversed(subdirs))

    @staticmethod
    def _list_dir(path: str) -> List[os.DirEntry]:
        try:
            with os.scandir(path) as entries:
                # Materialize the listing so the handle is released before yielding
                return list(entries)
        except OSError as e:
            raise WalkError(path, f"Cannot list directory {path}: {e}") from e

    @staticmethod
    def _is_system_trash(path: str) -> bool:
        """Check if path belongs to OS trash/recycle bin (cross-platform)."""
        if sys.platform == "win32":
            return "$Recycle.Bin" in path or "\\Recycler\\" in path
        if sys.platform == "darwin":
            return "/.Trash/" in path or path.endswith("/.Trash")
        return ".local/share/Trash" in path or "/.trash/" in path

    def _is_excluded_directory(self, path: str) -> bool:
        normalized = os.path.normcase(os.path.abspath(path))
        for excluded in self.excluded_dirs:
            if normalized == excluded or normalized.startswith(excluded + os.sep):
                return True
        return False

    def _prefilter_dir(self, path: str) -> bool:
        """Skip system trash and excluded directories before descending."""
        if self._is_system_trash(path):
            logger.debug(f"Skipping system trash directory: {path}")
            return False
        if self.excluded_dirs and self._is_excluded_directory(path):
            logger.debug(f"Skipping excluded directory: {path}")
            return False
        return True

    def _extension_passes(self, filename: str) -> bool:
        if not self.extensions:
            return True
        return os.path.splitext(filename)[1].lower() in self.extensions
