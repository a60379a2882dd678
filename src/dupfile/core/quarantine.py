"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/quarantine.py
Non-destructive removal of duplicates.

Redundant copies are moved into a quarantine folder instead of being deleted, and
can be moved back out to a separate restore folder. The representative of a group
(earliest modification time, then path) is never touched.

A move is a rename when source and destination share a filesystem, otherwise a
copy followed by deleting the original. If the original cannot be deleted the copy
is removed again, so a file never ends up in both places and never disappears.
"""

import logging
import os
import shutil
import time
from typing import Callable, Dict, List, Optional

from dupfile.core.errors import QuarantineMoveError, StoreError, TransientFileError
from dupfile.core.hasher import ChecksumEngineImpl
from dupfile.core.interfaces import ChecksumEngine, DuplicateStore
from dupfile.core.models import (
    DuplicateGroup, FileRecord, QuarantineGroup, QuarantineRecord, QuarantineReport, representative_key
)
from dupfile.core.scanner import FileSystemWalker
from dupfile.services.file_service import FileService

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[QuarantineRecord], bool]


class QuarantineManager:
    """
    Moves duplicates into quarantine, lists, restores and purges them.

    Attributes:
        quarantine_dir: Where redundant copies go (created on first move)
        restore_dir: Where restored files go (created on first restore)
    """

    def __init__(
        self,
        store: DuplicateStore,
        quarantine_dir: str,
        restore_dir: str,
        engine: Optional[ChecksumEngine] = None,
        trash_func: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.quarantine_dir = os.path.abspath(quarantine_dir)
        self.restore_dir = os.path.abspath(restore_dir)
        self.engine = engine or ChecksumEngineImpl()
        self._trash = trash_func or FileService.move_to_trash
        # Records moved by this process, so listings can show where files came from
        self._moved: Dict[str, QuarantineRecord] = {}

    # ---------- quarantine ----------

    @staticmethod
    def select_representative(group: DuplicateGroup) -> FileRecord:
        return min(group.files, key=representative_key)

    def delete_group_duplicates(self, group: DuplicateGroup, verify: bool = False) -> QuarantineReport:
        """
        Moves every member except the representative into quarantine.

        With verify=True each file is re-hashed first and skipped if its content no
        longer matches the group checksum. Per-file failures are reported, not raised.
        """
        keeper = self.select_representative(group)
        report = QuarantineReport(kept=keeper)

        if not os.path.isfile(keeper.path):
            # Without the original on disk the copies are the only data left
            logger.warning(f"Original {keeper.path} is missing; leaving group untouched")
            for record in group.files:
                if record.path != keeper.path:
                    report.failed.append((record.path, f"Original missing: {keeper.path}"))
            return report

        for record in group.files:
            if record.path == keeper.path:
                continue

            if verify and self.engine.compute_checksum(record.path) != group.checksum:
                logger.warning(f"Content of {record.path} changed since the scan; skipped")
                report.failed.append((record.path, "Content changed since the scan"))
                continue

            try:
                destination = self._free_destination(self.quarantine_dir, record.name)
                self._move(record.path, destination)
            except QuarantineMoveError as e:
                logger.warning(str(e))
                report.failed.append((record.path, str(e)))
                continue

            moved = QuarantineRecord(
                quarantine_path=destination,
                original_path=record.path,
                moved_at=time.time(),
                size=record.size,
                checksum=record.checksum,
            )
            self._moved[destination] = moved
            report.moved.append(moved)
            logger.info(f"Quarantined {record.path} -> {destination}")

            try:
                self.store.remove(record.path)
            except StoreError as e:
                # The file itself is safe; the index is rebuilt by the next scan
                logger.warning(f"Could not drop {record.path} from the checksum index: {e}")

        return report

    def contains(self, path: str) -> bool:
        """True for paths strictly inside the quarantine folder."""
        return os.path.abspath(path).startswith(self.quarantine_dir + os.sep)

    # ---------- restore ----------

    def restore_file(self, record: QuarantineRecord, confirm: ConfirmCallback) -> Optional[str]:
        """
        Moves a quarantined file into the restore folder after the caller confirms.
        Returns the restored path, or None when confirmation was refused.
        """
        if not self.contains(record.quarantine_path):
            raise TransientFileError(record.quarantine_path, f"Outside the quarantine folder: {record.quarantine_path}")
        if not os.path.isfile(record.quarantine_path):
            raise TransientFileError(record.quarantine_path, f"Not in quarantine: {record.quarantine_path}")

        if not confirm(record):
            logger.debug(f"Restore of {record.quarantine_path} declined")
            return None

        destination = self._free_destination(self.restore_dir, record.name)
        self._move(record.quarantine_path, destination)
        self._moved.pop(record.quarantine_path, None)
        self._prune_empty_dirs(os.path.dirname(record.quarantine_path))
        logger.info(f"Restored {record.quarantine_path} -> {destination}")
        return destination

    # ---------- listing & purge ----------

    def list_quarantine(self) -> List[QuarantineGroup]:
        """
        Re-hashes quarantine contents and groups them by checksum, largest first.
        Display only: the checksum index is not consulted or changed.
        """
        by_checksum: Dict[str, List[QuarantineRecord]] = {}
        for record in self._quarantined_files():
            checksum = self.engine.compute_checksum(record.quarantine_path)
            if checksum is None:
                continue
            record.checksum = checksum
            by_checksum.setdefault(checksum, []).append(record)

        groups = [
            QuarantineGroup(checksum=checksum, records=sorted(records, key=lambda r: r.quarantine_path))
            for checksum, records in by_checksum.items()
        ]
        groups.sort(key=lambda g: (-g.total_size, g.checksum))
        return groups

    def quarantine_size(self) -> int:
        return sum(record.size for record in self._quarantined_files())

    def purge_quarantine(self, records: Optional[List[QuarantineRecord]] = None) -> int:
        """
        Sends quarantined files to the system trash. Returns how many were purged.
        """
        targets = records if records is not None else list(self._quarantined_files())
        purged = 0
        for record in targets:
            if not self.contains(record.quarantine_path):
                logger.warning(f"Refusing to purge {record.quarantine_path}: outside the quarantine folder")
                continue
            try:
                self._trash(record.quarantine_path)
            except (OSError, RuntimeError) as e:
                logger.warning(f"Failed to purge {record.quarantine_path}: {e}")
                continue
            purged += 1
            self._moved.pop(record.quarantine_path, None)
            self._prune_empty_dirs(os.path.dirname(record.quarantine_path))
        logger.info(f"Purged {purged} of {len(targets)} quarantined files")
        return purged

    def _quarantined_files(self):
        if not os.path.isdir(self.quarantine_dir):
            return
        for path in FileSystemWalker().walk(self.quarantine_dir):
            try:
                st = os.stat(path)
            except OSError as e:
                logger.debug(f"Skipping {path}: {e}")
                continue
            known = self._moved.get(path)
            yield QuarantineRecord(
                quarantine_path=path,
                original_path=known.original_path if known else None,
                moved_at=known.moved_at if known else st.st_ctime,
                size=st.st_size,
            )

    # ---------- filesystem helpers ----------

    @staticmethod
    def _free_destination(directory: str, name: str) -> str:
        """
        First free location for `name` inside directory. Collisions go to numbered
        subdirectories (directory/1/name, directory/2/name, ...) so the name never changes.
        """
        candidate = os.path.join(directory, name)
        counter = 1
        while os.path.lexists(candidate):
            candidate = os.path.join(directory, str(counter), name)
            counter += 1
        try:
            os.makedirs(os.path.dirname(candidate), exist_ok=True)
        except OSError as e:
            raise QuarantineMoveError(candidate, f"Cannot create {os.path.dirname(candidate)}: {e}") from e
        return candidate

    @staticmethod
    def _move(source: str, destination: str) -> None:
        """Rename, or copy + delete when rename is not possible."""
        try:
            os.rename(source, destination)
            return
        except OSError as e:
            logger.debug(f"Rename {source} -> {destination} failed ({e}); copying instead")

        try:
            shutil.copy2(source, destination)
        except OSError as e:
            QuarantineManager._discard(destination)
            raise QuarantineMoveError(source, f"Failed to move {source}: {e}") from e

        try:
            os.remove(source)
        except OSError as e:
            # Keep the single original rather than two copies
            QuarantineManager._discard(destination)
            raise QuarantineMoveError(source, f"Copied but could not remove {source}: {e}") from e

    @staticmethod
    def _discard(path: str) -> None:
        try:
            if os.path.lexists(path):
                os.remove(path)
        except OSError as e:
            logger.warning(f"Could not remove partial copy {path}: {e}")

    def _prune_empty_dirs(self, directory: str) -> None:
        """Removes empty collision subdirectories below the quarantine root."""
        root = self.quarantine_dir
        directory = os.path.abspath(directory)
        while directory.startswith(root + os.sep):
            try:
                os.rmdir(directory)
            except OSError:
                return
            directory = os.path.dirname(directory)
