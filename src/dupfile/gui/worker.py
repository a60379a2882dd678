"""
Qt bridge for ScanCommand: a QRunnable for QThreadPool that turns
ScanSession snapshots into Qt signals for the visual shell.
"""
from PySide6.QtCore import QMutex, QMutexLocker, QObject, QRunnable, Signal

from dupfile.commands import ScanCommand
from dupfile.core.errors import StoreError
from dupfile.core.models import ScanParams, ScanSession, ScanStatus


class WorkerSignals(QObject):
    """Signals live on a QObject; QRunnable cannot own them."""
    progress = Signal(object)        # ScanSession snapshot
    finished = Signal(list, object)  # duplicate groups, completed ScanSession
    cancelled = Signal(object)       # cancelled ScanSession
    error = Signal(str)


class ScanWorker(QRunnable):
    """
    One scan session on a pool thread.

    After stop() the worker is silent: the shell asked for it, so neither
    progress nor a terminal signal is delivered. A session cancelled through
    the coordinator by someone else is reported via `cancelled`.
    """
    def __init__(self, params: ScanParams, command: ScanCommand):
        super().__init__()
        self.params = params
        self.command = command
        self.signals = WorkerSignals()
        self._stopped = False
        self._mutex = QMutex()
        self.setAutoDelete(True)

    def stop(self):
        with QMutexLocker(self._mutex):
            self._stopped = True
        self.command.coordinator.cancel()

    def is_stopped(self) -> bool:
        with QMutexLocker(self._mutex):
            return self._stopped

    def _emit(self, signal, *args) -> None:
        with QMutexLocker(self._mutex):
            if self._stopped:
                return
            try:
                signal.emit(*args)
            except RuntimeError:
                pass  # receiver already deleted

    def safe_progress_emit(self, session: ScanSession):
        self._emit(self.signals.progress, session)

    def run(self):
        if self.is_stopped():
            return

        try:
            groups, session = self.command.execute(
                self.params,
                progress_callback=self.safe_progress_emit,
                stopped_flag=self.is_stopped
            )
        except StoreError as e:
            self._emit(self.signals.error, f"Scan failed: {e}")
            return
        except Exception as e:
            self._emit(self.signals.error, f"{type(e).__name__}: {e}")
            return

        if session.status is ScanStatus.CANCELLED:
            self._emit(self.signals.cancelled, session)
        else:
            self._emit(self.signals.finished, groups, session)
