import hashlib
import os
from pathlib import Path
from typing import Optional

from file_inventory.inventory_record import InventoryRecord

# 2022-02-19 23:08:47 UTC, in nanoseconds.
BASE_MTIME_NS = 1645312127724000000

def make_record(inode: int,
                size: int=100,
                mod_time: int=BASE_MTIME_NS,
                path: Optional[str]=None,
                hash: Optional[str]=None
               ) -> InventoryRecord:
    """Builds a record without touching the filesystem."""
    if path is None:
        path = f"/data/file{inode}.txt"
    return InventoryRecord(
        inode=inode,
        name=os.path.basename(path),
        path=path,
        size=size,
        mod_time=mod_time,
        hash=hash
    )

def write_file(path: Path,
               content: bytes,
               mtime_ns: Optional[int]=None
              ) -> Path:
    """Writes `content` to `path`, creating parent folders, and optionally sets its mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    if mtime_ns is not None:
        os.utime(path, ns=(mtime_ns, mtime_ns))
    return path

def sha256_hex(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()

class RecordingHasher:
    """
    A stand-in hasher that remembers which paths it was asked to hash.

    Paths listed in `failing_paths` raise a `PermissionError`, like an
    unreadable file would.
    """
    def __init__(self, failing_paths: tuple=()) -> None:
        self.calls: list[str] = []
        self._failing_paths = set(failing_paths)

    def __call__(self, path) -> str:
        path = os.fspath(path)
        self.calls.append(path)
        if path in self._failing_paths:
            raise PermissionError(13, "Permission denied", path)
        return sha256_hex(path.encode("utf8"))

def make_deep_tree(root: Path, depth: int) -> list[Path]:
    """
    Nests `depth` folders named "d" under `root`, one level at a time, and
    returns them outermost first.
    """
    folders = []
    folder = root
    for _ in range(depth):
        folder = folder / "d"
        folder.mkdir()
        folders.append(folder)
    return folders

def remove_deep_tree(folders: list[Path]) -> None:
    """Removes a tree built by `make_deep_tree`, deepest folder first."""
    for folder in reversed(folders):
        for child in folder.iterdir():
            child.unlink()
        folder.rmdir()
