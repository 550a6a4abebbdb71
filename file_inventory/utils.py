"""Common utils"""

import os
from pathlib import Path
from typing import Collection, Generator

def is_sqlite_db(path: Path) -> bool:
    """Checks if given file contains a SQLite database."""
    if not path.is_file():
        raise FileNotFoundError(f"Path given doesn't exist: {path}")

    # SQLite database header is 100 bytes long.
    if path.stat().st_size < 100:
        return False

    with path.open(mode="rb") as f:
        header = f.read(16)

    return header == b"SQLite format 3\0"

def walk_entries(root: str | os.PathLike,
                 exclude: Collection[tuple[int, int]]=frozenset()
                ) -> Generator[tuple[str, os.DirEntry], None, None]:
    """
    Yields a `(path, entry)` pair for everything below `root`.

    Directories are descended into depth first. Symlinks to directories are
    yielded like any other entry, but never followed. The order entries are
    yielded in is whatever order the OS lists them in.

    Unlike `os.walk`, errors are never swallowed: an unreadable or missing
    directory raises, which ends the walk.

    Arguments:
        root:
          The directory to walk.
        exclude:
          `(st_dev, st_ino)` keys of entries to leave out. An excluded
          directory isn't descended into.

    Raises:
        OSError:
          A directory couldn't be listed, or an entry couldn't be classified.
    """
    excluded_inodes = {inode for _, inode in exclude}
    stack = [os.fspath(root)]
    while stack:
        current = stack.pop()
        subdirs = []
        with os.scandir(current) as entries:
            for entry in entries:
                if entry.inode() in excluded_inodes and file_key(entry.stat(follow_symlinks=False)) in exclude:
                    continue
                yield entry.path, entry
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(entry.path)

        # Reversed, so subdirectories are walked in listing order.
        stack.extend(reversed(subdirs))

def file_key(file_stat: os.stat_result) -> tuple[int, int]:
    """Returns the `(st_dev, st_ino)` pair that identifies a file on the system."""
    return file_stat.st_dev, file_stat.st_ino

def dump_database(path: Path) -> None:
    """Dumps the contents of an `InventoryDb` into stdout as a table."""
    from file_inventory.inventory_db import InventoryDb
    path = Path(path)
    print("Inode".ljust(12) + " | " + "Path".ljust(80) + " | " + "Hash".ljust(64) + " | " + "Size".ljust(10) + " | " + "mod_time".ljust(19))
    with InventoryDb(path, readonly=True) as db:
        records = db.load_all()
        for inode in sorted(records):
            record = records[inode]
            f_inode = str(record.inode).ljust(12)
            f_path = record.path.ljust(80)
            f_hash = (record.hash or "").ljust(64)
            f_size = str(record.size).ljust(10)
            f_mod_time = str(record.mod_time).ljust(19)
            print(f"{f_inode} | {f_path} | {f_hash} | {f_size} | {f_mod_time}")
    print("Done.")
