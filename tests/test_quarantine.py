"""
Critical quarantine tests — a representative must never move and no file may
ever be lost or end up in two places.
"""
import errno
import os
import shutil
from unittest.mock import Mock

import pytest

from dupfile.core.errors import TransientFileError
from dupfile.core.hasher import ChecksumEngineImpl
from dupfile.core.models import DuplicateGroup, FileRecord, QuarantineRecord
from dupfile.core.quarantine import QuarantineManager


def index(store, *paths):
    """Hashes files into the store and returns their records."""
    engine = ChecksumEngineImpl()
    records = []
    for path in paths:
        st = os.stat(path)
        r = FileRecord(
            path=str(path), size=st.st_size, modified_time=st.st_mtime,
            checksum=engine.compute_checksum(str(path))
        )
        store.upsert(r)
        records.append(r)
    return records


@pytest.fixture
def manager(store, app_paths):
    return QuarantineManager(store, app_paths.quarantine_dir, app_paths.restore_dir, trash_func=Mock())


@pytest.fixture
def triple(make_file, store):
    """Three copies with distinct mtimes; keep.txt is the oldest."""
    paths = [
        make_file("keep.txt", b"payload" * 100, mtime=100.0),
        make_file("copy1.txt", b"payload" * 100, mtime=200.0),
        make_file("nested/copy2.txt", b"payload" * 100, mtime=300.0),
    ]
    records = index(store, *paths)
    return paths, DuplicateGroup(checksum=records[0].checksum, files=records)


def exdev_rename(*args, **kwargs):
    raise OSError(errno.EXDEV, "Invalid cross-device link")


class TestDeleteGroupDuplicates:
    """Representative stays, everything else goes to quarantine."""

    def test_only_representative_remains(self, manager, triple, store, app_paths):
        paths, group = triple

        report = manager.delete_group_duplicates(group)

        assert report.ok
        assert report.kept.path == str(paths[0])
        assert paths[0].exists()
        assert not paths[1].exists()
        assert not paths[2].exists()
        assert os.path.isfile(os.path.join(app_paths.quarantine_dir, "copy1.txt"))
        assert os.path.isfile(os.path.join(app_paths.quarantine_dir, "copy2.txt"))
        assert report.bytes_moved == group.reclaimable_size

    def test_store_records_removed_for_moved_files(self, manager, triple, store):
        paths, group = triple
        manager.delete_group_duplicates(group)

        assert store.get(str(paths[0])) is not None
        assert store.get(str(paths[1])) is None
        assert store.get(str(paths[2])) is None

    def test_representative_is_oldest_even_if_listed_last(self, make_file, store, manager):
        old = make_file("z_old.txt", b"same", mtime=10.0)
        new = make_file("a_new.txt", b"same", mtime=20.0)
        records = index(store, new, old)

        report = manager.delete_group_duplicates(DuplicateGroup(checksum=records[0].checksum, files=records))

        assert report.kept.path == str(old)
        assert old.exists()
        assert not new.exists()

    def test_name_collisions_use_numbered_subdirectories(self, make_file, store, manager, app_paths):
        paths = [
            make_file("a/photo.jpg", b"img", mtime=1.0),
            make_file("b/photo.jpg", b"img", mtime=2.0),
            make_file("c/photo.jpg", b"img", mtime=3.0),
        ]
        records = index(store, *paths)

        report = manager.delete_group_duplicates(DuplicateGroup(checksum=records[0].checksum, files=records))

        q = app_paths.quarantine_dir
        assert sorted(r.quarantine_path for r in report.moved) == sorted([
            os.path.join(q, "photo.jpg"),
            os.path.join(q, "1", "photo.jpg"),
        ])
        assert all(os.path.basename(r.quarantine_path) == "photo.jpg" for r in report.moved)

    def test_cross_device_falls_back_to_copy(self, manager, triple, monkeypatch, app_paths):
        paths, group = triple
        monkeypatch.setattr(os, "rename", exdev_rename)

        report = manager.delete_group_duplicates(group)

        assert report.ok
        assert not paths[1].exists()
        with open(os.path.join(app_paths.quarantine_dir, "copy1.txt"), "rb") as f:
            assert f.read() == b"payload" * 100

    def test_undeletable_original_stays_in_place(self, manager, triple, store, monkeypatch, app_paths):
        paths, group = triple
        locked = str(paths[1])
        real_remove = os.remove

        def remove(path, *args, **kwargs):
            if os.fspath(path) == locked:
                raise PermissionError(errno.EACCES, "Permission denied", path)
            return real_remove(path, *args, **kwargs)

        monkeypatch.setattr(os, "rename", exdev_rename)
        monkeypatch.setattr(os, "remove", remove)

        report = manager.delete_group_duplicates(group)

        assert [path for path, _ in report.failed] == [locked]
        assert paths[1].exists()
        assert not os.path.exists(os.path.join(app_paths.quarantine_dir, "copy1.txt"))
        assert store.get(locked) is not None
        # The other copy is still processed
        assert not paths[2].exists()
        assert [r.original_path for r in report.moved] == [str(paths[2])]

    def test_failed_copy_leaves_original(self, manager, triple, monkeypatch, app_paths):
        paths, group = triple

        def broken_copy(src, dst, **kwargs):
            with open(dst, "wb") as f:
                f.write(b"partial")
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(os, "rename", exdev_rename)
        monkeypatch.setattr(shutil, "copy2", broken_copy)

        report = manager.delete_group_duplicates(group)

        assert len(report.failed) == 2
        assert all(p.exists() for p in paths)
        assert not os.path.exists(os.path.join(app_paths.quarantine_dir, "copy1.txt"))

    def test_missing_representative_leaves_group_untouched(self, manager, triple):
        paths, group = triple
        paths[0].unlink()

        report = manager.delete_group_duplicates(group)

        assert report.moved == []
        assert len(report.failed) == 2
        assert paths[1].exists() and paths[2].exists()

    def test_verify_skips_changed_files(self, manager, triple):
        paths, group = triple
        paths[1].write_bytes(b"edited since the scan")

        report = manager.delete_group_duplicates(group, verify=True)

        assert [path for path, _ in report.failed] == [str(paths[1])]
        assert paths[1].exists()
        assert not paths[2].exists()


class TestRestore:
    """Restore into a separate folder after confirmation."""

    def test_restore_moves_file_to_restore_dir(self, manager, triple, app_paths):
        _, group = triple
        moved = manager.delete_group_duplicates(group).moved

        destination = manager.restore_file(moved[0], confirm=lambda record: True)

        assert destination == os.path.join(app_paths.restore_dir, moved[0].name)
        assert os.path.isfile(destination)
        listed = [r.quarantine_path for g in manager.list_quarantine() for r in g.records]
        assert moved[0].quarantine_path not in listed
        assert moved[1].quarantine_path in listed

    def test_refused_confirmation_changes_nothing(self, manager, triple):
        _, group = triple
        moved = manager.delete_group_duplicates(group).moved

        assert manager.restore_file(moved[0], confirm=lambda record: False) is None
        assert os.path.isfile(moved[0].quarantine_path)

    def test_missing_quarantined_file(self, manager, triple):
        _, group = triple
        moved = manager.delete_group_duplicates(group).moved
        os.remove(moved[0].quarantine_path)

        with pytest.raises(TransientFileError):
            manager.restore_file(moved[0], confirm=lambda record: True)

    def test_files_outside_quarantine_are_never_restored(self, manager, make_file, app_paths):
        outside = make_file("notes/important.txt", b"keep me")
        confirm = Mock(return_value=True)

        with pytest.raises(TransientFileError, match="Outside the quarantine folder"):
            manager.restore_file(QuarantineRecord(quarantine_path=str(outside)), confirm=confirm)

        assert outside.exists()
        confirm.assert_not_called()
        assert not os.path.exists(app_paths.restore_dir)

    def test_relative_escape_is_rejected(self, manager, make_file, app_paths):
        outside = make_file("notes/important.txt", b"keep me")
        sneaky = os.path.join(app_paths.quarantine_dir, os.path.relpath(str(outside), app_paths.quarantine_dir))

        with pytest.raises(TransientFileError):
            manager.restore_file(QuarantineRecord(quarantine_path=sneaky), confirm=lambda record: True)
        assert outside.exists()

    def test_restore_never_overwrites(self, manager, triple, app_paths):
        _, group = triple
        moved = manager.delete_group_duplicates(group).moved
        os.makedirs(app_paths.restore_dir)
        existing = os.path.join(app_paths.restore_dir, moved[0].name)
        with open(existing, "wb") as f:
            f.write(b"created later")

        destination = manager.restore_file(moved[0], confirm=lambda record: True)

        assert destination == os.path.join(app_paths.restore_dir, "1", moved[0].name)
        with open(existing, "rb") as f:
            assert f.read() == b"created later"

    def test_empty_collision_folder_is_pruned(self, make_file, store, manager, app_paths):
        paths = [make_file(f"{d}/photo.jpg", b"img", mtime=i) for i, d in enumerate("abc")]
        records = index(store, *paths)
        moved = manager.delete_group_duplicates(DuplicateGroup(checksum=records[0].checksum, files=records)).moved
        nested = [r for r in moved if os.path.dirname(r.quarantine_path) != app_paths.quarantine_dir][0]

        manager.restore_file(nested, confirm=lambda record: True)

        assert not os.path.exists(os.path.dirname(nested.quarantine_path))
        assert os.path.isdir(app_paths.quarantine_dir)


class TestListAndPurge:
    def test_list_groups_by_content_largest_first(self, manager, triple, make_file, store):
        _, group = triple
        manager.delete_group_duplicates(group)
        small = make_file("s1.txt", b"s", mtime=1.0), make_file("s2.txt", b"s", mtime=2.0)
        records = index(store, *small)
        manager.delete_group_duplicates(DuplicateGroup(checksum=records[0].checksum, files=records))

        groups = manager.list_quarantine()

        assert [g.count for g in groups] == [2, 1]
        assert groups[0].checksum == group.checksum
        assert all(r.original_path for g in groups for r in g.records)

    def test_listing_from_a_new_process_has_no_origin(self, manager, triple, store, app_paths):
        _, group = triple
        manager.delete_group_duplicates(group)

        fresh = QuarantineManager(store, app_paths.quarantine_dir, app_paths.restore_dir)
        groups = fresh.list_quarantine()

        assert len(groups) == 1
        assert all(r.original_path is None for r in groups[0].records)
        assert fresh.quarantine_size() == group.reclaimable_size

    def test_list_empty_quarantine(self, manager):
        assert manager.list_quarantine() == []
        assert manager.quarantine_size() == 0

    def test_purge_sends_files_to_trash(self, manager, triple):
        _, group = triple
        moved = manager.delete_group_duplicates(group).moved

        assert manager.purge_quarantine() == 2
        trashed = sorted(call.args[0] for call in manager._trash.call_args_list)
        assert trashed == sorted(r.quarantine_path for r in moved)

    def test_purge_skips_records_outside_quarantine(self, manager, triple, make_file):
        _, group = triple
        moved = manager.delete_group_duplicates(group).moved
        outside = make_file("notes/important.txt", b"keep me")

        purged = manager.purge_quarantine([QuarantineRecord(quarantine_path=str(outside)), moved[0]])

        assert purged == 1
        manager._trash.assert_called_once_with(moved[0].quarantine_path)

    def test_purge_counts_only_successes(self, store, app_paths, triple):
        _, group = triple
        trash = Mock(side_effect=[None, RuntimeError("Failed to move to trash")])
        manager = QuarantineManager(store, app_paths.quarantine_dir, app_paths.restore_dir, trash_func=trash)
        manager.delete_group_duplicates(group)

        assert manager.purge_quarantine() == 1
        assert trash.call_count == 2
