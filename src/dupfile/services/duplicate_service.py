from typing import Iterable, List

from dupfile.core.models import DuplicateGroup


class DuplicateService:
    @staticmethod
    def remove_files_from_groups(groups: List[DuplicateGroup], file_paths: Iterable[str]) -> List[DuplicateGroup]:
        """
        Removes files with the specified paths from all duplicate groups.

        Groups left with fewer than 2 files are discarded; the remaining groups
        re-elect their representative from the files that are left.

        Args:
            groups (List[DuplicateGroup]): Duplicate groups to update.
            file_paths (Iterable[str]): Paths of files that are gone (quarantined, trashed).

        Returns:
            List[DuplicateGroup]: Updated list of duplicate groups.
        """
        removed = set(file_paths)
        updated_groups = []
        for group in groups:
            remaining = [f for f in group.files if f.path not in removed]
            if len(remaining) >= 2:
                updated_groups.append(DuplicateGroup(checksum=group.checksum, files=remaining))
        return updated_groups

    @staticmethod
    def keep_only_one_file_per_group(groups: List[DuplicateGroup]) -> List[str]:
        """Paths to quarantine so that only the representative of each group remains."""
        return [f.path for group in groups for f in group.redundant_files]

    @staticmethod
    def reclaimable_size(groups: List[DuplicateGroup]) -> int:
        """Bytes freed by keeping only the representative of every group."""
        return sum(group.reclaimable_size for group in groups)
