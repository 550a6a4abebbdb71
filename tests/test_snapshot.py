import os
import tempfile
import unittest
from pathlib import Path

from file_inventory import utils as inventory_utils
from file_inventory.logger import Logger
from file_inventory.snapshot import take_snapshot
from tests import utils


class TestWalkEntries(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_walk_entries(self):
        utils.write_file(self.root / "file1.txt", b"1")
        utils.write_file(self.root / "folder1" / "file2.txt", b"2")
        utils.write_file(self.root / "folder1" / "folder with spaces" / "file 3.txt", b"3")

        expected_results = set([str(x) for x in self.root.rglob("*")])
        result_paths = set()
        for path, entry in inventory_utils.walk_entries(self.root):
            self.assertIsInstance(entry, os.DirEntry)
            self.assertEqual(path, entry.path)
            result_paths.add(path)

        self.assertSetEqual(expected_results, result_paths)

    def test_symlinked_dirs_not_followed(self):
        utils.write_file(self.root / "real" / "file.txt", b"x")
        os.symlink(self.root / "real", self.root / "link")

        paths = [path for path, _ in inventory_utils.walk_entries(self.root)]
        self.assertIn(str(self.root / "link"), paths)
        self.assertNotIn(str(self.root / "link" / "file.txt"), paths)

    def test_missing_root_raises(self):
        with self.assertRaises(FileNotFoundError):
            list(inventory_utils.walk_entries(self.root / "nonexistent"))

    def test_walk_is_lazy(self):
        utils.write_file(self.root / "file1.txt", b"1")
        walk = inventory_utils.walk_entries(self.root)
        # Nothing is listed until the generator is advanced.
        self.temp_dir.cleanup()
        with self.assertRaises(FileNotFoundError):
            next(walk)

    def test_deep_tree(self):
        folders = utils.make_deep_tree(self.root, 1100)
        try:
            file = folders[-1] / "deep.txt"
            file.write_bytes(b"deep")

            paths = [path for path, _ in inventory_utils.walk_entries(self.root)]

            self.assertEqual(len(paths), 1101)
            self.assertEqual(paths[-1], str(file))
        finally:
            utils.remove_deep_tree(folders)

    def test_subfolders_walked_in_listing_order(self):
        utils.write_file(self.root / "a" / "a.txt", b"a")
        utils.write_file(self.root / "b" / "b.txt", b"b")

        listed = [entry.name for entry in os.scandir(self.root)]
        walked = [path for path, _ in inventory_utils.walk_entries(self.root)]

        expected = [str(self.root / name) for name in listed]
        for name in listed:
            expected.append(str(self.root / name / f"{name}.txt"))
        self.assertEqual(walked, expected)

    def test_exclude(self):
        file = utils.write_file(self.root / "file.txt", b"1")
        utils.write_file(self.root / "skipped.txt", b"2")
        utils.write_file(self.root / "logs" / "run.log", b"3")
        exclude = {
            inventory_utils.file_key(os.stat(self.root / "skipped.txt")),
            inventory_utils.file_key(os.stat(self.root / "logs"))
        }

        paths = [path for path, _ in inventory_utils.walk_entries(self.root, exclude)]

        # Excluded folders aren't descended into.
        self.assertEqual(paths, [str(file)])


class TestTakeSnapshot(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_snapshot_regular_files(self):
        file1 = utils.write_file(self.root / "file1.txt", b"hello", mtime_ns=utils.BASE_MTIME_NS)
        file2 = utils.write_file(self.root / "a" / "b" / "file2.bin", b"\x00" * 1234)

        snapshot = take_snapshot(self.root)

        self.assertEqual(len(snapshot), 2)
        stat1 = os.stat(file1)
        record1 = snapshot[stat1.st_ino]
        self.assertEqual(record1.inode, stat1.st_ino)
        self.assertEqual(record1.name, "file1.txt")
        self.assertEqual(record1.path, str(file1))
        self.assertEqual(record1.size, 5)
        self.assertEqual(record1.mod_time, utils.BASE_MTIME_NS)
        # The walk never hashes.
        self.assertIsNone(record1.hash)

        record2 = snapshot[os.stat(file2).st_ino]
        self.assertEqual(record2.size, 1234)
        self.assertEqual(record2.path, str(file2))

        for inode, record in snapshot.items():
            self.assertEqual(inode, record.inode)

    def test_non_regular_files_skipped(self):
        file = utils.write_file(self.root / "file.txt", b"data")
        (self.root / "empty_dir").mkdir()
        os.symlink(file, self.root / "file_link")
        os.symlink(self.root / "empty_dir", self.root / "dir_link")
        os.symlink(self.root / "nonexistent", self.root / "broken_link")
        os.mkfifo(self.root / "fifo")

        snapshot = take_snapshot(self.root)

        self.assertEqual([record.path for record in snapshot.values()], [str(file)])

    def test_hard_links_share_one_record(self):
        file = utils.write_file(self.root / "original.txt", b"data")
        os.link(file, self.root / "hardlink.txt")

        snapshot = take_snapshot(self.root)

        self.assertEqual(len(snapshot), 1)
        record = snapshot[os.stat(file).st_ino]
        self.assertIn(record.name, ("original.txt", "hardlink.txt"))

    def test_empty_tree(self):
        self.assertEqual(take_snapshot(self.root), {})

    def test_root_is_a_file(self):
        file = utils.write_file(self.root / "single.txt", b"abc")
        snapshot = take_snapshot(file)
        self.assertEqual(list(snapshot), [os.stat(file).st_ino])
        self.assertEqual(snapshot[os.stat(file).st_ino].name, "single.txt")

    def test_root_is_a_symlink(self):
        file = utils.write_file(self.root / "target.txt", b"abc")
        (self.root / "dir").mkdir()
        os.symlink(file, self.root / "file_link")
        os.symlink(self.root / "dir", self.root / "dir_link")

        # Symlinks are never followed, the root included.
        self.assertEqual(take_snapshot(self.root / "file_link"), {})
        self.assertEqual(take_snapshot(self.root / "dir_link"), {})

    def test_deep_tree(self):
        folders = utils.make_deep_tree(self.root, 1100)
        try:
            file = folders[-1] / "deep.txt"
            file.write_bytes(b"deep")

            snapshot = take_snapshot(self.root)

            self.assertEqual([record.path for record in snapshot.values()], [str(file)])
        finally:
            utils.remove_deep_tree(folders)

    def test_exclude(self):
        file = utils.write_file(self.root / "file.txt", b"data")
        db_file = utils.write_file(self.root / "filelist.db", b"db")
        log_folder = self.root / "logs"
        utils.write_file(log_folder / "run.log", b"log")

        snapshot = take_snapshot(self.root, exclude=[db_file, str(log_folder), self.root / "nonexistent"])
        self.assertEqual([record.path for record in snapshot.values()], [str(file)])

        # Excluding the root itself leaves nothing to record.
        self.assertEqual(take_snapshot(file, exclude=[file]), {})
        self.assertEqual(take_snapshot(self.root, exclude=[self.root]), {})

    def test_missing_root_is_fatal(self):
        with self.assertRaises(FileNotFoundError):
            take_snapshot(self.root / "nonexistent")

    @unittest.skipIf(hasattr(os, "geteuid") and os.geteuid() == 0, "root can read any directory")
    def test_unreadable_directory_is_fatal(self):
        utils.write_file(self.root / "file.txt", b"data")
        locked = self.root / "locked"
        utils.write_file(locked / "hidden.txt", b"secret")
        locked.chmod(0)
        try:
            with self.assertRaises(PermissionError):
                take_snapshot(self.root)
        finally:
            locked.chmod(0o755)

    def test_logs_summary(self):
        utils.write_file(self.root / "file.txt", b"data")
        (self.root / "dir").mkdir()
        log_file = self.root / "run.log"

        with Logger(log_file) as log:
            take_snapshot(self.root / "dir", log)
            take_snapshot(self.root, log)

        text = log_file.read_text(encoding="utf8")
        self.assertIn("0 files, 0 other entries skipped", text)
        # "dir" is skipped, and "run.log" is found along with "file.txt".
        self.assertIn("2 files, 1 other entries skipped", text)


if __name__ == "__main__":
    unittest.main()
