"""
Unified command orchestrator for scanning and quarantine.
This is the SINGLE entry point used by both GUI and CLI.
No Qt/PySide6 dependencies — pure Python.
"""
import logging
import os
from typing import Callable, List, Optional, Tuple

from dupfile.config import AppPaths
from dupfile.core.coordinator import ScanCoordinator
from dupfile.core.errors import StoreError
from dupfile.core.interfaces import DuplicateStore
from dupfile.core.models import (
    DuplicateGroup, QuarantineGroup, QuarantineRecord, QuarantineReport, ScanParams, ScanSession, ScanStatus
)
from dupfile.core.quarantine import QuarantineManager
from dupfile.core.store import close_store, get_store

logger = logging.getLogger(__name__)


class ScanCommand:
    """
    Wires the store, coordinator and quarantine manager for one set of AppPaths.

    Usage:
        # For GUI (with progress UI updates):
        command = ScanCommand()
        groups, session = command.execute(
            params,
            progress_callback=qt_progress_adapter,
            stopped_flag=qt_cancellation_check
        )

        # For CLI (with console progress):
        groups, session = command.execute(params, progress_callback=cli_progress_printer)
        reports = command.quarantine_groups(groups)
    """

    def __init__(self, paths: Optional[AppPaths] = None, store: Optional[DuplicateStore] = None):
        self.paths = paths or AppPaths.default()
        self._owns_store = store is None
        self.store = store if store is not None else get_store(self.paths.database_path)
        # Never scan our own folders: quarantined copies would show up as duplicates again
        self.coordinator = ScanCoordinator(
            self.store,
            excluded_dirs=[self.paths.data_dir, self.paths.quarantine_dir, self.paths.restore_dir],
        )
        self.quarantine = QuarantineManager(self.store, self.paths.quarantine_dir, self.paths.restore_dir)

    def execute(
            self,
            params: ScanParams,
            progress_callback: Optional[Callable[[ScanSession], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Tuple[List[DuplicateGroup], ScanSession]:
        """
        Run one scan session on the calling thread.

        Args:
            params: Validated scan parameters
            progress_callback: receives every ScanSession snapshot
            stopped_flag: () -> bool, polled on every snapshot; True cancels the scan

        Returns:
            Tuple of (duplicate_groups, terminal session). Groups are empty unless
            the session completed.

        Raises:
            StoreError: If the checksum index failed (session ended in ERROR)
        """
        def listener(snapshot: ScanSession) -> None:
            if stopped_flag is not None and stopped_flag():
                self.coordinator.cancel()
            if progress_callback is not None:
                progress_callback(snapshot)

        self.coordinator.add_listener(listener)
        try:
            session = self.coordinator.run(params)
        finally:
            self.coordinator.remove_listener(listener)

        if session.status is ScanStatus.ERROR:
            raise StoreError(session.error_message or "Scan failed")
        return self.coordinator.groups, session

    def quarantine_groups(self, groups: List[DuplicateGroup]) -> List[QuarantineReport]:
        """Quarantines the redundant copies of every group, one report per group."""
        return [self.quarantine.delete_group_duplicates(group) for group in groups]

    def list_quarantine(self) -> List[QuarantineGroup]:
        return self.quarantine.list_quarantine()

    def restore(
            self,
            quarantine_path: str,
            confirm: Callable[[QuarantineRecord], bool]
    ) -> Optional[str]:
        record = QuarantineRecord(quarantine_path=os.path.abspath(os.path.expanduser(quarantine_path)))
        return self.quarantine.restore_file(record, confirm)

    def purge_quarantine(self) -> int:
        return self.quarantine.purge_quarantine()

    def close(self) -> None:
        """Releases the process-wide store if this command opened it."""
        if self._owns_store:
            close_store()
