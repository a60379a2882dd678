"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

coordinator.py
Scan session state machine: walk → prune → hash → persist → classify.

PIPELINE
--------
1. Clear index records under the root (stale results never leak into a new run)
2. Enumerate candidates with the walker and stat each one
3. Quick scan: above the threshold, drop candidates whose size is unique
4. Hash the rest on the checksum engine's worker pool; upsert successes
5. Refresh the live duplicate count every few files
6. Read the final groups from the index and complete

STATE & OBSERVERS
-----------------
Every change produces a new immutable ScanSession snapshot. Snapshots are pushed
to subscriber queues and listener callbacks; nothing outside the coordinator can
change a session. Transitions go through models.transition(), so an illegal
event (start while scanning) raises InvalidTransition instead of corrupting state.

CANCELLATION & ERRORS
---------------------
cancel() only sets a flag. The pipeline polls it between directory entries and
before dispatching each file; a hash already running is allowed to finish and its
result is discarded. Per-file failures are logged and skipped. A StoreError ends
the session in ERROR with its message and no groups.
"""

import logging
import os
import queue
import threading
from collections import deque
from concurrent.futures import Future
from typing import Callable, Deque, FrozenSet, Iterable, List, Optional, Tuple

from dupfile.config import ScanConfig
from dupfile.core.errors import CancellationRequested, StoreError
from dupfile.core.grouper import SizeIndexer
from dupfile.core.hasher import ChecksumEngineImpl
from dupfile.core.interfaces import ChecksumEngine, DuplicateStore, Walker
from dupfile.core.models import (
    Candidate, DuplicateGroup, FileRecord, ScanEvent, ScanParams, ScanSession, ScanStatus, Stage
)
from dupfile.core.scanner import FileSystemWalker

logger = logging.getLogger(__name__)

SessionListener = Callable[[ScanSession], None]


class ScanCoordinator:
    """
    Runs scan sessions against one DuplicateStore.

    Usage:
        coordinator = ScanCoordinator(get_store())
        updates = coordinator.subscribe()
        session = coordinator.start("/data/photos", extensions={".jpg"})
        if session.status is ScanStatus.COMPLETED:
            for group in coordinator.groups: ...
    """

    ENUMERATION_PUBLISH_INTERVAL = 100

    def __init__(
        self,
        store: DuplicateStore,
        engine: Optional[ChecksumEngine] = None,
        walker_factory: Optional[Callable[[FrozenSet[str]], Walker]] = None,
        excluded_dirs: Optional[List[str]] = None,
        duplicate_count_interval: int = ScanConfig.DUPLICATE_COUNT_INTERVAL,
    ):
        self.store = store
        self._engine = engine
        self._excluded_dirs = list(excluded_dirs or [])
        self._walker_factory = walker_factory or self._default_walker
        self.duplicate_count_interval = max(1, duplicate_count_interval)

        self._lock = threading.RLock()
        self._cancel_event = threading.Event()
        self._session = ScanSession()
        self._groups: List[DuplicateGroup] = []
        self._subscribers: List["queue.Queue[ScanSession]"] = []
        self._listeners: List[SessionListener] = []

    def _default_walker(self, extensions: FrozenSet[str]) -> Walker:
        return FileSystemWalker(extensions=extensions, excluded_dirs=self._excluded_dirs)

    # ---------- observers ----------

    @property
    def session(self) -> ScanSession:
        with self._lock:
            return self._session

    @property
    def groups(self) -> List[DuplicateGroup]:
        """Final duplicate groups of the last session; empty unless it completed."""
        with self._lock:
            return list(self._groups)

    def subscribe(self) -> "queue.Queue[ScanSession]":
        """Returns a queue that receives every snapshot published from now on."""
        channel: "queue.Queue[ScanSession]" = queue.Queue()
        with self._lock:
            self._subscribers.append(channel)
        return channel

    def unsubscribe(self, channel: "queue.Queue[ScanSession]") -> None:
        with self._lock:
            if channel in self._subscribers:
                self._subscribers.remove(channel)

    def add_listener(self, listener: SessionListener) -> None:
        """Adds a callback invoked synchronously, on the scanning thread, for every snapshot."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _publish(self, snapshot: ScanSession) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
            listeners = list(self._listeners)
        for channel in subscribers:
            channel.put(snapshot)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Error in scan listener")

    def _update(self, **changes) -> ScanSession:
        with self._lock:
            self._session = self._session.update(**changes)
            snapshot = self._session
        self._publish(snapshot)
        return snapshot

    def _apply(self, event: ScanEvent, **changes) -> ScanSession:
        with self._lock:
            self._session = self._session.apply(event, **changes)
            snapshot = self._session
        logger.info(f"Scan of {snapshot.root_path}: {event.value} -> {snapshot.status.value}")
        self._publish(snapshot)
        return snapshot

    # ---------- control ----------

    def cancel(self) -> bool:
        """Asks the running session to stop. Returns False when nothing is running."""
        with self._lock:
            if self._session.status is not ScanStatus.SCANNING:
                return False
            self._cancel_event.set()
            return True

    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise CancellationRequested("Scan cancelled")

    def start(
        self,
        root_dir: str,
        extensions: Optional[Iterable[str]] = None,
        quick_scan: bool = True,
        quick_scan_threshold: int = ScanConfig.QUICK_SCAN_THRESHOLD,
        workers: int = 1,
    ) -> ScanSession:
        """Runs a full session on the calling thread and returns its terminal snapshot."""
        params = ScanParams(
            root_dir=root_dir,
            extensions=frozenset(extensions or ()),
            quick_scan=quick_scan,
            quick_scan_threshold=quick_scan_threshold,
            workers=workers,
        )
        return self.run(params)

    def run(self, params: ScanParams) -> ScanSession:
        self._begin(params)
        return self._run_pipeline(params)

    def start_in_background(self, params: ScanParams) -> threading.Thread:
        """
        Enters SCANNING on the calling thread, then runs the pipeline on a daemon thread.
        Raises InvalidTransition immediately if a session is already running.
        """
        self._begin(params)
        thread = threading.Thread(
            target=self._run_pipeline, args=(params,), name="dupfile-scan", daemon=True
        )
        thread.start()
        return thread

    def _begin(self, params: ScanParams) -> ScanSession:
        with self._lock:
            fresh = ScanSession(
                root_path=params.root_dir,
                extension_filter=params.extensions,
                quick_scan_enabled=params.quick_scan,
                status=self._session.status,
            )
            # Raises InvalidTransition while another session is scanning
            self._session = fresh.apply(ScanEvent.START, stage=Stage.ENUMERATING.value)
            self._cancel_event.clear()
            self._groups = []
            snapshot = self._session
        logger.info(f"Scan of {snapshot.root_path} started (quick={params.quick_scan})")
        self._publish(snapshot)
        return snapshot

    # ---------- pipeline ----------

    def _run_pipeline(self, params: ScanParams) -> ScanSession:
        engine, owned = self._engine, False
        if engine is None:
            engine = ChecksumEngineImpl(chunk_size=ScanConfig.HASH_CHUNK_SIZE, max_workers=params.workers)
            owned = True

        try:
            groups, duplicate_count = self._pipeline(params, engine)
        except CancellationRequested:
            return self._apply(ScanEvent.CANCEL, stage=Stage.FINISHED.value, current_file="")
        except StoreError as e:
            logger.exception(f"Checksum index failure while scanning {params.root_dir}")
            return self._apply(
                ScanEvent.STORE_FAILURE, stage=Stage.FINISHED.value, current_file="", error_message=str(e)
            )
        except Exception as e:
            logger.exception(f"Unexpected error while scanning {params.root_dir}")
            return self._apply(
                ScanEvent.STORE_FAILURE, stage=Stage.FINISHED.value, current_file="",
                error_message=f"Unexpected error: {e}"
            )
        finally:
            if owned:
                engine.close()

        return self._finish(groups, duplicate_count)

    def _finish(self, groups: List[DuplicateGroup], duplicate_count: int) -> ScanSession:
        with self._lock:
            # cancel() holds the same lock, so a late request is seen here or finds a terminal state
            if self._cancel_event.is_set():
                event, changes = ScanEvent.CANCEL, {}
            else:
                self._groups = groups
                event, changes = ScanEvent.ALL_PROCESSED, {"duplicate_count": duplicate_count}
            self._session = self._session.apply(event, stage=Stage.FINISHED.value, current_file="", **changes)
            snapshot = self._session
        logger.info(f"Scan of {snapshot.root_path}: {event.value} -> {snapshot.status.value}")
        self._publish(snapshot)
        return snapshot

    def _pipeline(self, params: ScanParams, engine: ChecksumEngine) -> Tuple[List[DuplicateGroup], int]:
        root = params.root_dir
        self.store.clear(root)

        candidates = self._enumerate(root, params.extensions)
        self._check_cancelled()

        self._update(stage=Stage.SIZE.value, current_file="")
        indexer = SizeIndexer(threshold=params.quick_scan_threshold)
        selected, pruned = indexer.select_for_hashing(candidates, params.quick_scan)
        if pruned:
            logger.info(f"Quick scan skipped {pruned} files with a unique size")

        self._update(stage=Stage.HASHING.value, total=len(selected), processed=0)
        self._hash_candidates(root, selected, engine, params.workers)
        self._check_cancelled()

        duplicate_count = self.store.duplicate_count(root)
        return self.store.duplicate_groups(root), duplicate_count

    def _enumerate(self, root: str, extensions: FrozenSet[str]) -> List[Candidate]:
        walker = self._walker_factory(extensions)
        candidates: List[Candidate] = []
        for path in walker.walk(root, stopped_flag=self.is_cancelled):
            self._check_cancelled()
            candidate = self._stat(path)
            if candidate is None:
                continue
            candidates.append(candidate)
            if len(candidates) % self.ENUMERATION_PUBLISH_INTERVAL == 0:
                self._update(current_file=candidate.name)
        logger.debug(f"Enumerated {len(candidates)} candidates under {root}")
        return candidates

    @staticmethod
    def _stat(path: str) -> Optional[Candidate]:
        try:
            st = os.stat(path, follow_symlinks=False)
        except OSError as e:
            logger.debug(f"Skipping {path}: {e}")
            return None
        return Candidate(path=path, size=st.st_size, modified_time=st.st_mtime)

    def _hash_candidates(
        self,
        root: str,
        selected: List[Candidate],
        engine: ChecksumEngine,
        workers: int,
    ) -> None:
        """
        Keeps up to `workers` hashes in flight and consumes them in submission order,
        so index writes stay on this thread and `processed` grows by one per file.
        """
        pending = iter(selected)
        in_flight: Deque[Tuple[Candidate, Future]] = deque()
        processed = 0

        def dispatch() -> None:
            while len(in_flight) < workers and not self.is_cancelled():
                candidate = next(pending, None)
                if candidate is None:
                    return
                in_flight.append((candidate, engine.submit(candidate.path)))

        dispatch()
        while in_flight:
            candidate, future = in_flight.popleft()
            try:
                checksum = future.result()
            except Exception as e:
                logger.warning(f"Hashing failed for {candidate.path}: {e}")
                checksum = None

            if self.is_cancelled():
                for _, other in in_flight:
                    other.cancel()
                raise CancellationRequested("Scan cancelled")

            if checksum is not None:
                self.store.upsert(FileRecord(
                    path=candidate.path,
                    size=candidate.size,
                    modified_time=candidate.modified_time,
                    checksum=checksum,
                ))
            else:
                logger.warning(f"Skipping unreadable file {candidate.path}")

            processed += 1
            changes = {"processed": processed, "current_file": candidate.name}
            if processed % self.duplicate_count_interval == 0:
                changes["duplicate_count"] = self.store.duplicate_count(root)
            self._update(**changes)

            dispatch()

