"""
Describes a single file in the inventory.

This module contains the value objects shared by the snapshotter, the
inventory database, and the reconciliation engine.
"""

import enum
import os
from typing import Optional

class HashStatus(enum.Enum):
    """
    The outcome of hashing a record during the current run.

    This is never written to the database; it only exists so a run can tell
    apart a file that was too large to hash from one that couldn't be read.
    """
    NOT_ATTEMPTED = "not_attempted"
    FAILED = "failed"
    SUCCEEDED = "succeeded"

class InventoryRecord:
    """
    The metadata of one regular file, identified by its inode.

    Records are immutable. Operations that would change a record, such as
    attaching a content hash, return a new record instead.

    Attributes:
        inode:
          The inode number of the file. Unique within one filesystem at one
          point in time.
        name:
          The file's base name, without any directory component.
        path:
          The path the file was found at during the walk.
        size:
          File size in bytes.
        mod_time:
          The file's last modification time in nanoseconds.
        hash:
          The hex SHA256 digest of the file, or `None` when the file wasn't
          hashed.
        hash_status:
          A `HashStatus` describing what happened when this run tried to hash
          the file.
    """
    def __init__(self,
                 inode: int,
                 name: str,
                 path: str,
                 size: int,
                 mod_time: int,
                 hash: Optional[str]=None,
                 hash_status: HashStatus=HashStatus.NOT_ATTEMPTED
                ) -> None:
        """
        Raises:
            TypeError:
              One of the arguments has the wrong type.
            ValueError:
              `inode` or `size` is negative.
        """
        if not _is_int(inode):
            raise TypeError("inode must be an int.")
        if inode < 0:
            raise ValueError(f"inode can't be negative: {inode}")
        if not isinstance(name, str):
            raise TypeError("name must be a string.")
        if not isinstance(path, str):
            raise TypeError("path must be a string.")
        if not _is_int(size):
            raise TypeError("size must be an int.")
        if size < 0:
            raise ValueError(f"size can't be negative: {size}")
        if not _is_int(mod_time):
            raise TypeError("mod_time must be an int.")
        if hash is not None and not isinstance(hash, str):
            raise TypeError("hash must be a string or None.")
        if not isinstance(hash_status, HashStatus):
            raise TypeError("hash_status must be a HashStatus.")

        self._inode = inode
        self._name = name
        self._path = path
        self._size = size
        self._mod_time = mod_time
        self._hash = hash or None
        self._hash_status = hash_status

    @classmethod
    def from_stat(cls,
                  path: str | os.PathLike,
                  stat: os.stat_result
                 ) -> "InventoryRecord":
        """Builds an unhashed record from a path and its `os.stat` result."""
        path = os.fspath(path)
        return cls(
            inode=stat.st_ino,
            name=os.path.basename(path),
            path=path,
            size=stat.st_size,
            mod_time=stat.st_mtime_ns
        )

    def with_hash(self,
                  hash: Optional[str],
                  hash_status: HashStatus
                 ) -> "InventoryRecord":
        """Returns a copy of this record carrying the given hash outcome."""
        return InventoryRecord(
            inode=self._inode,
            name=self._name,
            path=self._path,
            size=self._size,
            mod_time=self._mod_time,
            hash=hash,
            hash_status=hash_status
        )

    def as_sql_dict(self) -> dict:
        """
        Returns the persisted fields of the record as a dict.

        The keys match the named parameters used by `InventoryDb`.
        `hash_status` isn't included since it is never stored.
        """
        return {
            "inode": self.inode,
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "mod_time": self.mod_time,
            "hash": self.hash
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InventoryRecord):
            return NotImplemented
        return self.as_sql_dict() == other.as_sql_dict()

    def __hash__(self) -> int:
        return hash(tuple(self.as_sql_dict().values()))

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(inode={self.inode}, path={self.path!r}, "
                f"size={self.size}, mod_time={self.mod_time}, hash={self.hash!r})")

    def __str__(self) -> str:
        return f"{self.size} {self.name}"

    @property
    def inode(self) -> int:
        """The inode number of the file."""
        return self._inode

    @property
    def name(self) -> str:
        """The base name of the file."""
        return self._name

    @property
    def path(self) -> str:
        """The path of the file as observed during the walk."""
        return self._path

    @property
    def size(self) -> int:
        """The size of the file in bytes."""
        return self._size

    @property
    def mod_time(self) -> int:
        """The time of last modification of the file in nanoseconds."""
        return self._mod_time

    @property
    def hash(self) -> Optional[str]:
        """The hex digest of the file, or `None` if it has no hash."""
        return self._hash

    @property
    def hash_status(self) -> HashStatus:
        """What happened when this run tried to hash the file."""
        return self._hash_status

class DbInventoryRecord(InventoryRecord):
    """
    Creates a record from a row previously stored in the database.

    This is the inverse of `InventoryRecord.as_sql_dict`. It never touches the
    filesystem, so the file it describes doesn't need to exist anymore.
    """
    def __init__(self, file_dict: dict) -> None:
        if not isinstance(file_dict, dict):
            raise TypeError("file_dict given wasn't of type dict.")
        for key in ("inode", "name", "path", "size", "mod_time", "hash"):
            if key not in file_dict:
                raise ValueError(f"file_dict is missing the '{key}' key.")

        super().__init__(
            inode=file_dict["inode"],
            name=file_dict["name"],
            path=file_dict["path"],
            size=file_dict["size"],
            mod_time=file_dict["mod_time"],
            hash=file_dict["hash"]
        )

def _is_int(value: object) -> bool:
    # bool is a subclass of int, but never a valid inode, size, or mtime.
    return isinstance(value, int) and not isinstance(value, bool)
