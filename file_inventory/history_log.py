"""
Logs inventory changes, and the reasons behind them.

Attributes:
    LOG_ACTIONS:
      A dict, where each key is a valid action that can be done to a record.
      Each key's value is a list representing valid reasons for that action to
      be done. For example, the action "update" can have the reason "changed".
"""

from pathlib import Path
import csv
import gzip
from file_inventory.inventory_record import InventoryRecord

_CSV_HEADER = ["action", "reason", "inode", "path", "hash", "hash_status"]

# This dict maps log actions to reason lists
LOG_ACTIONS = {
    "new": [
        "new_inode" # An inode was found on disk that isn't in the database
    ],

    "update": [
        "changed" # The inode's mod time moved forward
    ],

    "delete": [
        "nonexistent" # An inode from the database wasn't found in the walk
    ],

    "skip": [
        "unchanged" # The inode's mod time didn't move forward
    ]
}

class FileInventoryHistoryLog:
    """
    Logs inventory changes to a given file.

    Output file contains a CSV representing changes and reasons for each
    inode the reconciliation touched or skipped.
    """
    def __init__(self,
                 log_path: Path,
                 gzip_compress: bool=True
                ) -> None:
        """
        Creates an inventory history logger.

        Args:
            log_path:
              `Path` of where to save log.
            gzip_compress:
              Whether to compress log file with gzip.

        Raises:
            TypeError:
              `log_path` isn't a `Path` object.
            FileExistsError:
              A file already exists at `log_path`.

        """
        if not isinstance(log_path, Path):
            raise TypeError("log_path must be a Path object.")

        self._log_path = log_path
        self._closed = False

        if self._log_path.exists():
            raise FileExistsError(f"Can't create a new log at '{self._log_path}': File already exists.")

        if gzip_compress:
            self._fd = gzip.open(self._log_path, mode="xt", encoding="utf8", newline="")
        else:
            self._fd = self._log_path.open(mode="xt", encoding="utf8", newline="")

        self._csv_writer = csv.DictWriter(self._fd, fieldnames=_CSV_HEADER)
        self._csv_writer.writeheader()

    def __enter__(self) -> "FileInventoryHistoryLog":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def add(self, action: str, reason: str, record: InventoryRecord) -> None:
        """
        Add an action to the log file.

        Args:
            action:
              The action that should be logged. Valid actions are stored in the
              module's LOG_ACTIONS attribute.
            reason:
              The reason the action was performed. Valid reasons are stored as
              in a list on the module's corresponding LOG_ACTIONS attribute.
            record:
              The `InventoryRecord` this log entry applies to. For "new" and
              "update" this should be the record as written, so the new hash
              and its status are logged.

        Raises:
            ValueError:
              Function was supplied a bad action/reason pair.
        """
        if self._closed:
            raise ValueError("Can't write new log entry: log has been closed.")

        if not action in LOG_ACTIONS:
            raise ValueError(f"Invalid log action: {action}")
        if not reason in LOG_ACTIONS[action]:
            raise ValueError(f"Invalid log reason '{reason}' for action '{action}'")
        if not isinstance(record, InventoryRecord):
            raise TypeError("record argument must be an InventoryRecord object.")

        csv_dict = {
            "action": action,
            "reason": reason,
            "inode": record.inode,
            "path": record.path
        }

        if action == "new" or action == "update":
            csv_dict["hash"] = record.hash or ""
            csv_dict["hash_status"] = record.hash_status.value

        self._csv_writer.writerow(csv_dict)

    def close(self) -> None:
        """Closes log file."""
        if self._closed:
            return

        self._fd.close()
        self._closed = True
