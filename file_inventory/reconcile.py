"""
Brings the inventory database in line with a fresh filesystem snapshot.

The engine compares the records stored by the previous run (the prior
mapping) with the records found by this run's walk (the current mapping), both
keyed by inode, and applies the difference to the database in one transaction.

A matched inode is only treated as changed when its mod time moved forward. A
rename or move that leaves the mod time alone is not picked up.
"""

import os
from typing import Callable, Optional

from file_inventory.hasher import hash_file
from file_inventory.history_log import FileInventoryHistoryLog
from file_inventory.inventory_db import InventoryDb
from file_inventory.inventory_record import HashStatus, InventoryRecord
from file_inventory.logger import Logger

DEFAULT_HASH_SIZE_LIMIT = 10 * 1024 * 1024 #10MiB

Hasher = Callable[[str | os.PathLike], str]

class ChangeSet:
    """
    The store operations needed to turn the prior mapping into the current
    one.

    Every list is sorted by inode.

    Attributes:
        deleted:
          Prior records whose inode wasn't found by the walk.
        updated:
          Current records whose inode is stored, and whose mod time is later
          than the stored one.
        created:
          Current records whose inode isn't stored.
        unchanged:
          Current records whose inode is stored, and whose mod time isn't
          later than the stored one. No operation is issued for these.
    """
    def __init__(self,
                 deleted: list[InventoryRecord],
                 updated: list[InventoryRecord],
                 created: list[InventoryRecord],
                 unchanged: list[InventoryRecord]
                ) -> None:
        self.deleted = deleted
        self.updated = updated
        self.created = created
        self.unchanged = unchanged

    @property
    def operation_count(self) -> int:
        """The number of records written or removed."""
        return len(self.deleted) + len(self.updated) + len(self.created)

class ReconcileResult(ChangeSet):
    """
    What a reconciliation run wrote to the database.

    Attributes:
        deleted:
          The records that were deleted.
        updated:
          The records as they were written by an update, including their new
          hash and `HashStatus`.
        created:
          The records as they were inserted, including their hash and
          `HashStatus`.
        unchanged:
          The current records no operation was issued for.
    """

    @property
    def has_changes(self) -> bool:
        """Whether the run changed the database at all."""
        return self.operation_count > 0

    @property
    def hash_failures(self) -> int:
        """How many written records couldn't be hashed because of an error."""
        return sum(1 for record in self.updated + self.created
                   if record.hash_status is HashStatus.FAILED)

def plan_changes(prior: dict[int, InventoryRecord],
                 current: dict[int, InventoryRecord]
                ) -> ChangeSet:
    """
    Works out which records need deleting, updating, and creating.

    Neither mapping is modified.

    Arguments:
        prior:
          The records loaded from the database, keyed by inode.
        current:
          The records found by the walk, keyed by inode.
    """
    deleted = [prior[inode] for inode in sorted(prior) if inode not in current]
    updated = []
    created = []
    unchanged = []

    for inode in sorted(current):
        record = current[inode]
        stored = prior.get(inode)
        if stored is None:
            created.append(record)
        elif record.mod_time > stored.mod_time:
            updated.append(record)
        else:
            # Also covers a mod time that went backwards (clock skew), and
            # moves/renames that kept the mod time.
            unchanged.append(record)

    return ChangeSet(deleted, updated, created, unchanged)

def hash_record(record: InventoryRecord,
                hash_size_limit: int,
                hasher: Hasher=hash_file,
                log: Optional[Logger]=None
               ) -> InventoryRecord:
    """
    Returns a copy of `record` carrying its content hash, when it can have one.

    Files larger than `hash_size_limit` bytes aren't read at all. Hashing
    errors are never raised: the record comes back without a hash and with
    `HashStatus.FAILED`, and a warning is logged.
    """
    if record.size > hash_size_limit:
        return record.with_hash(None, HashStatus.NOT_ATTEMPTED)

    try:
        digest = hasher(record.path)
    except OSError as err:
        if log is not None:
            log.warn(f"Couldn't hash '{record.path}', storing it without a hash: {err}")
        return record.with_hash(None, HashStatus.FAILED)

    return record.with_hash(digest, HashStatus.SUCCEEDED)

def reconcile(db: InventoryDb,
              prior: dict[int, InventoryRecord],
              current: dict[int, InventoryRecord],
              hash_size_limit: int=DEFAULT_HASH_SIZE_LIMIT,
              hasher: Hasher=hash_file,
              log: Optional[Logger]=None,
              history: Optional[FileInventoryHistoryLog]=None
             ) -> ReconcileResult:
    """
    Applies the difference between `prior` and `current` to `db`.

    Stale records are deleted in one batch, changed records are re-hashed and
    updated, and new records are hashed and created, all inside a single
    transaction. Either every change is committed, or none are.

    Arguments:
        db:
          The `InventoryDb` the prior mapping was loaded from.
        prior:
          The records loaded from `db`, keyed by inode.
        current:
          The records found by the walk, keyed by inode.
        hash_size_limit:
          Files of at most this many bytes are hashed. Larger files are stored
          without a hash.
        hasher:
          The function used to hash a file, given its path.
        log:
          An optional `Logger` for hashing warnings and the run summary.
        history:
          An optional `FileInventoryHistoryLog`. It is only written to once
          the transaction has committed.

    Raises:
        TypeError:
          `hash_size_limit` isn't an int.
        ValueError:
          `hash_size_limit` is negative.
        sqlite3.Error, LookupError:
          A store operation failed. Nothing was written.
    """
    if not isinstance(hash_size_limit, int) or isinstance(hash_size_limit, bool):
        raise TypeError("hash_size_limit must be an int.")
    if hash_size_limit < 0:
        raise ValueError(f"hash_size_limit can't be negative: {hash_size_limit}")

    plan = plan_changes(prior, current)
    updated = []
    created = []

    with db.transaction():
        if plan.deleted:
            db.delete(plan.deleted)

        for record in plan.updated:
            record = hash_record(record, hash_size_limit, hasher, log)
            db.update(record)
            updated.append(record)

        for record in plan.created:
            record = hash_record(record, hash_size_limit, hasher, log)
            db.create(record)
            created.append(record)

    result = ReconcileResult(plan.deleted, updated, created, plan.unchanged)

    changes = (
        ("delete", "nonexistent", result.deleted),
        ("update", "changed", result.updated),
        ("new", "new_inode", result.created),
        ("skip", "unchanged", result.unchanged)
    )
    for action, reason, records in changes:
        for record in records:
            log_change(history, log, action, reason, record)

    if log is not None:
        log.log(f"Files added: {len(result.created)}", mirror_to_stdout=True)
        log.log(f"Files updated: {len(result.updated)}", mirror_to_stdout=True)
        log.log(f"Files deleted: {len(result.deleted)}", mirror_to_stdout=True)
        log.log(f"Files skipped: {len(result.unchanged)}", mirror_to_stdout=True)
        log.log(f"Hash errors: {result.hash_failures}", mirror_to_stdout=True)

    return result

def log_change(history: Optional[FileInventoryHistoryLog],
               log: Optional[Logger],
               action: str,
               reason: str,
               record: InventoryRecord
              ) -> None:
    """
    A simple helper that adds a change to the history log and the run log,
    whichever of them exist.
    """
    if history is not None:
        history.add(action, reason, record)
    if log is not None:
        log.log(f"{action.upper()}: {reason}, {record.inode} {record.path}")
