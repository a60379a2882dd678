"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements content hashing with a pluggable streaming algorithm.

ChecksumEngineImpl streams a file through SHA-256 in fixed-size chunks and runs
the work on its own thread pool, so the coordinating thread stays free to report
progress and poll for cancellation while a large file is being read.
"""

import hashlib
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from dupfile.core.interfaces import ChecksumEngine, HashAlgorithm

logger = logging.getLogger(__name__)

# Returned instead of a digest when a file could not be read
HASH_FAILED = None


# Use the same way to implement and use any other hashing algorithm
class SHA256AlgorithmImpl(HashAlgorithm):
    name = "sha256"

    @staticmethod
    def new():
        return hashlib.sha256()


class ChecksumEngineImpl(ChecksumEngine):
    """
    Computes full-content checksums.

    compute_checksum() is the synchronous primitive; submit() schedules it on the
    engine's worker pool. One worker is enough for correctness, more only add
    throughput, and the engine itself never touches shared state.
    """

    DEFAULT_CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        algorithm: Optional[HashAlgorithm] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_workers: int = 1
    ):
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        if max_workers < 1:
            raise ValueError("At least one worker is required")
        self.algorithm = algorithm or SHA256AlgorithmImpl()
        self.chunk_size = chunk_size
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def compute_checksum(self, path: str) -> Optional[str]:
        """Returns the hex digest of the file, or HASH_FAILED on any I/O error."""
        digest = self.algorithm.new()
        try:
            with open(path, 'rb') as f:
                for block in iter(lambda: f.read(self.chunk_size), b''):
                    digest.update(block)
        except OSError as e:
            logger.warning(f"Cannot hash {path}: {e}")
            return HASH_FAILED
        return digest.hexdigest()

    def submit(self, path: str) -> "Future[Optional[str]]":
        """Schedules compute_checksum on the worker pool."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="dupfile-hash"
            )
        return self._executor.submit(self.compute_checksum, path)

    def close(self) -> None:
        """Waits for in-flight hashes and releases the worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
