"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Size-based pruning of scan candidates (the quick-scan heuristic).

Two files with different byte sizes cannot be identical, so a size shared by
no other candidate proves its file unique without reading it. Pruning changes
how much gets hashed, never which duplicates are found.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Tuple

from dupfile.core.models import Candidate

logger = logging.getLogger(__name__)


class SizeIndexer:
    """
    Groups candidates by exact byte size and decides which of them get hashed.
    """

    def __init__(self, threshold: int = 100):
        self.threshold = threshold

    def group_by_size(self, candidates: List[Candidate]) -> Dict[int, List[Candidate]]:
        """Groups candidates by size, keeping only sizes shared by 2+ files."""
        return self._group_by(candidates, lambda c: c.size)

    def applies(self, quick_scan: bool, candidate_count: int) -> bool:
        """Quick scan only pays off above the threshold; below it every file is hashed."""
        return quick_scan and candidate_count > self.threshold

    def select_for_hashing(
        self,
        candidates: List[Candidate],
        quick_scan: bool
    ) -> Tuple[List[Candidate], int]:
        """
        Returns (candidates to hash, number pruned without hashing).
        Selected candidates keep their enumeration order.
        """
        if not self.applies(quick_scan, len(candidates)):
            return list(candidates), 0

        shared_sizes = self.group_by_size(candidates)
        selected = [c for c in candidates if c.size in shared_sizes]
        pruned = len(candidates) - len(selected)
        logger.debug(
            f"Quick scan: {len(shared_sizes)} shared sizes, "
            f"{len(selected)} to hash, {pruned} provably unique"
        )
        return selected, pruned

    @staticmethod
    def _group_by(candidates: List[Candidate], key_func: Callable[[Candidate], Any]) -> Dict[Any, List[Candidate]]:
        """
        Helper method to group candidates by any computed key.
        Args:
            candidates: Candidates to group
            key_func: Function that computes a hashable key from a Candidate
        Returns:
            Dict[key, List[Candidate]] with single-member buckets dropped
        """
        groups = defaultdict(list)
        for candidate in candidates:
            groups[key_func(candidate)].append(candidate)

        return {key: group for key, group in groups.items() if len(group) >= 2}
