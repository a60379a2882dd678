"""
Unit tests for SizeIndexer, the quick-scan pruning step.
"""
from dupfile.core.grouper import SizeIndexer
from dupfile.core.models import Candidate


def candidates(*sizes):
    return [Candidate(path=f"/data/f{i}", size=size, modified_time=0.0) for i, size in enumerate(sizes)]


class TestSizeIndexer:
    """Files with a unique size are provably unique and never need hashing."""

    def test_group_by_size_drops_singletons(self):
        groups = SizeIndexer().group_by_size(candidates(10, 10, 7, 3, 3, 3))
        assert sorted(groups) == [3, 10]
        assert len(groups[3]) == 3

    def test_prunes_unique_sizes_above_threshold(self):
        items = candidates(10, 10, 10, 7)
        selected, pruned = SizeIndexer(threshold=0).select_for_hashing(items, quick_scan=True)

        assert [c.size for c in selected] == [10, 10, 10]
        assert pruned == 1

    def test_hashes_everything_at_or_below_threshold(self):
        items = candidates(10, 10, 7)
        selected, pruned = SizeIndexer(threshold=3).select_for_hashing(items, quick_scan=True)

        assert selected == items
        assert pruned == 0

    def test_standard_scan_hashes_everything(self):
        items = candidates(1, 2, 3)
        selected, pruned = SizeIndexer(threshold=0).select_for_hashing(items, quick_scan=False)

        assert selected == items
        assert pruned == 0

    def test_selection_keeps_enumeration_order(self):
        items = candidates(5, 9, 5, 1, 9)
        selected, _ = SizeIndexer(threshold=0).select_for_hashing(items, quick_scan=True)
        assert [c.path for c in selected] == ["/data/f0", "/data/f1", "/data/f2", "/data/f4"]

    def test_applies(self):
        indexer = SizeIndexer(threshold=100)
        assert not indexer.applies(True, 100)
        assert indexer.applies(True, 101)
        assert not indexer.applies(False, 1000)
