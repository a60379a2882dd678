"""
Tests for ScanWorker, the Qt bridge over ScanCommand.
Signals are checked with plain Mock slots; no event loop is needed because
emits happen on the calling thread.
"""
from unittest.mock import Mock

import pytest

pytest.importorskip("PySide6")

from dupfile.commands import ScanCommand  # noqa: E402
from dupfile.core.errors import StoreError  # noqa: E402
from dupfile.core.models import ScanParams, ScanSession, ScanStatus  # noqa: E402
from dupfile.gui import ScanWorker  # noqa: E402


@pytest.fixture
def worker(app_paths, store, temp_dir):
    return ScanWorker(ScanParams(root_dir=str(temp_dir)), ScanCommand(app_paths, store=store))


def connect_all(worker):
    slots = {name: Mock() for name in ("progress", "finished", "cancelled", "error")}
    for name, slot in slots.items():
        getattr(worker.signals, name).connect(slot)
    return slots


class TestStop:
    """stop() cancels the coordinator and silences the worker."""

    def test_stop_cancels_coordinator(self, worker):
        worker.command.coordinator.cancel = Mock(return_value=False)

        assert not worker.is_stopped()
        worker.stop()

        assert worker.is_stopped()
        worker.command.coordinator.cancel.assert_called_once()

    def test_progress_is_dropped_after_stop(self, worker):
        slots = connect_all(worker)

        worker.safe_progress_emit(ScanSession())
        worker.stop()
        worker.safe_progress_emit(ScanSession())

        assert slots["progress"].call_count == 1

    def test_nothing_is_emitted_after_stop(self, worker):
        def execute(*_, **__):
            worker.stop()
            return [], ScanSession(status=ScanStatus.CANCELLED)

        worker.command.execute = Mock(side_effect=execute)
        slots = connect_all(worker)

        worker.run()

        assert all(slot.call_count == 0 for slot in slots.values())

    def test_stopped_before_run_never_scans(self, worker):
        worker.command.execute = Mock()
        worker.stop()

        worker.run()

        worker.command.execute.assert_not_called()


class TestRun:
    def test_completed_scan_emits_finished(self, worker, make_file):
        make_file("a.txt", b"same")
        make_file("b.txt", b"same")
        slots = connect_all(worker)

        worker.run()

        groups, session = slots["finished"].call_args[0]
        assert len(groups) == 1
        assert session.status is ScanStatus.COMPLETED
        assert slots["progress"].call_count > 0
        assert slots["cancelled"].call_count == 0

    def test_cancel_from_elsewhere_emits_cancelled(self, worker):
        worker.command.execute = Mock(return_value=([], ScanSession(status=ScanStatus.CANCELLED)))
        slots = connect_all(worker)

        worker.run()

        assert slots["cancelled"].call_args[0][0].status is ScanStatus.CANCELLED
        assert slots["finished"].call_count == 0

    def test_failed_session_message(self, worker):
        worker.command.execute = Mock(side_effect=StoreError("disk I/O error"))
        slots = connect_all(worker)

        worker.run()

        assert slots["error"].call_args[0][0] == "Scan failed: disk I/O error"

    def test_unexpected_error_names_the_exception(self, worker):
        worker.command.execute = Mock(side_effect=ValueError("Simulated failure"))
        slots = connect_all(worker)

        worker.run()

        assert slots["error"].call_args[0][0] == "ValueError: Simulated failure"

    def test_auto_delete(self, worker):
        assert worker.autoDelete() is True
