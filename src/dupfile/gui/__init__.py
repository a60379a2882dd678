"""
GUI components built on PySide6 (optional dependency, install with [gui] extra).
"""

from .worker import ScanWorker, WorkerSignals

__all__ = ["ScanWorker", "WorkerSignals"]
