"""
Unit tests for ChecksumEngineImpl with SHA256AlgorithmImpl.
Verifies streamed SHA-256 digests and the failure marker for unreadable files.
"""
import hashlib

import pytest

from dupfile.core.hasher import HASH_FAILED, ChecksumEngineImpl, SHA256AlgorithmImpl


class TestChecksumEngine:
    """Full-content SHA-256 computed in fixed-size chunks."""

    def test_digest_matches_hashlib(self, make_file):
        content = b"test content " * 10000
        path = make_file("big.bin", content)

        engine = ChecksumEngineImpl(chunk_size=4096)
        checksum = engine.compute_checksum(str(path))

        assert checksum == hashlib.sha256(content).hexdigest()
        assert len(checksum) == 64  # 256 bits

    def test_same_content_same_checksum(self, make_file):
        a = make_file("a.txt", b"A" * 1024)
        b = make_file("b.txt", b"A" * 1024)
        engine = ChecksumEngineImpl()
        assert engine.compute_checksum(str(a)) == engine.compute_checksum(str(b))

    def test_different_content_different_checksum(self, make_file):
        a = make_file("a.txt", b"A" * 1024)
        b = make_file("b.txt", b"B" * 1024)
        engine = ChecksumEngineImpl()
        assert engine.compute_checksum(str(a)) != engine.compute_checksum(str(b))

    def test_empty_file(self, make_file):
        path = make_file("empty.txt", b"")
        assert ChecksumEngineImpl().compute_checksum(str(path)) == hashlib.sha256(b"").hexdigest()

    def test_missing_file_returns_failure_marker(self, temp_dir):
        assert ChecksumEngineImpl().compute_checksum(str(temp_dir / "gone.txt")) is HASH_FAILED

    def test_directory_returns_failure_marker(self, temp_dir):
        assert ChecksumEngineImpl().compute_checksum(str(temp_dir)) is HASH_FAILED

    def test_submit_runs_on_worker_pool(self, make_file):
        path = make_file("a.txt", b"pool")
        with ChecksumEngineImpl(max_workers=2) as engine:
            future = engine.submit(str(path))
            assert future.result(timeout=10) == hashlib.sha256(b"pool").hexdigest()

    def test_close_is_idempotent(self):
        engine = ChecksumEngineImpl()
        engine.close()
        engine.close()

    def test_default_algorithm(self):
        assert ChecksumEngineImpl().algorithm.name == SHA256AlgorithmImpl.name == "sha256"

    @pytest.mark.parametrize("kwargs", [{"chunk_size": 0}, {"max_workers": 0}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            ChecksumEngineImpl(**kwargs)
