"""
Builds a snapshot of the regular files under a directory tree.
"""

import os
import stat
from typing import Iterable, Optional

from file_inventory import utils
from file_inventory.inventory_record import InventoryRecord
from file_inventory.logger import Logger

def take_snapshot(root: str | os.PathLike,
                  log: Optional[Logger]=None,
                  exclude: Iterable[str | os.PathLike]=()
                 ) -> dict[int, InventoryRecord]:
    """
    Walks `root` and returns every regular file found, keyed by inode.

    Directories, symlinks, devices, FIFOs, and sockets are skipped. When two
    paths share an inode (hard links), only the last one walked is kept.

    If `root` is itself a regular file, the snapshot holds just that file. If
    it's neither a directory nor a regular file (a symlink, for example), the
    snapshot is empty.

    Arguments:
        root:
          The directory to walk.
        log:
          An optional `Logger` that receives a summary of the walk.
        exclude:
          Paths to leave out of the snapshot, such as the database file
          itself. An excluded directory isn't walked. Paths that don't exist
          are ignored.

    Raises:
        OSError:
          A directory couldn't be listed or a file couldn't be stat'd. There is
          no partial result; the whole snapshot is abandoned.
    """
    root = os.fspath(root)
    snapshot: dict[int, InventoryRecord] = {}

    excluded = set()
    for path in exclude:
        try:
            excluded.add(utils.file_key(os.stat(path)))
        except FileNotFoundError:
            continue

    skipped = 0
    root_stat = os.lstat(root)
    if utils.file_key(root_stat) in excluded:
        skipped += 1
    elif stat.S_ISREG(root_stat.st_mode):
        record = InventoryRecord.from_stat(root, root_stat)
        snapshot[record.inode] = record
    elif not stat.S_ISDIR(root_stat.st_mode):
        skipped += 1
    else:
        for path, entry in utils.walk_entries(root, excluded):
            if not entry.is_file(follow_symlinks=False):
                skipped += 1
                continue
            record = InventoryRecord.from_stat(path, os.stat(path))
            snapshot[record.inode] = record

    if log is not None:
        log.log(f"Walked '{root}': {len(snapshot)} files, {skipped} other entries skipped.")

    return snapshot
