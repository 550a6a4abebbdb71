"""
This script walks a directory tree and updates the inventory database to match
it.
"""

import sys
import time
from argparse import ArgumentParser
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

from file_inventory import utils
from file_inventory.config import DEFAULT_DATABASE, ScanConfig
from file_inventory.history_log import FileInventoryHistoryLog
from file_inventory.inventory_db import InventoryDb
from file_inventory.logger import Logger
from file_inventory.reconcile import ReconcileResult, reconcile
from file_inventory.snapshot import take_snapshot

arg_parser = ArgumentParser(
                                prog="file-inventory",
                                description="Scans a directory tree and updates the inode inventory database."
                           )
arg_parser.add_argument("root", nargs="?", type=Path, help="Directory to scan. Defaults to the current directory.")
arg_parser.add_argument("--database", type=Path, help=f"Inventory database path. Defaults to '{DEFAULT_DATABASE}'.")
arg_parser.add_argument("--init", action="store_true", help="Drop and recreate the database before scanning.")
arg_parser.add_argument("--sql", action="store_true", help="Show every statement sent to the database.")
arg_parser.add_argument("--hash-size-limit", dest="hash_size_limit", type=int, help="Only hash files of at most this many bytes. Defaults to 10MiB.")
arg_parser.add_argument("--log-folder", dest="log_folder", type=Path, help="A folder to hold run logs and change history.")
arg_parser.add_argument("--config", type=Path, help="JSON config file. Command line options override it.")
arg_parser.add_argument("--dump", action="store_true", help="Print the stored inventory and exit without scanning.")

def main(argv: Optional[list[str]]=None) -> int:
    args = arg_parser.parse_args(argv)
    config = ScanConfig.from_args(args)

    if args.dump:
        utils.dump_database(config.database)
        return 0

    update_database(config)
    return 0

def update_database(config: ScanConfig) -> ReconcileResult:
    """
    Runs one full scan: load the stored inventory, walk the tree, and
    reconcile the two.

    Arguments:
        config:
          The `ScanConfig` describing the run.

    Raises:
        OSError:
          The tree couldn't be walked. The database is left untouched.
        sqlite3.Error:
          The database couldn't be opened or written. Nothing was committed.
    """
    log_file = None
    history_csv_file = None
    if config.log_folder is not None:
        log_paths = create_log_file_paths(config.log_folder)
        log_file = log_paths["log"]
        history_csv_file = log_paths["csv"]

    with Logger(log_file, mirror_to_stdout=False) as log:
        history_context = (FileInventoryHistoryLog(history_csv_file)
                           if history_csv_file is not None else nullcontext())
        with history_context as history:
            log.log(f"Opening database '{config.database}'...")
            with InventoryDb(config.database,
                             show_sql=config.show_sql,
                             sql_logger=lambda statement: log.log(f"SQL: {statement}", mirror_to_stdout=True)
                            ) as db:
                if config.init:
                    log.log("Reinitializing database...", mirror_to_stdout=True)
                    db.reinitialize()

                prior = db.load_all()
                log.log(f"Loaded {len(prior)} records from the database.")

                log.log(f"Walking '{config.root}'...", mirror_to_stdout=True)
                # The database and the run logs change on every run.
                exclude = [db.db_path]
                if config.log_folder is not None:
                    exclude.append(config.log_folder)
                current = take_snapshot(config.root, log, exclude=exclude)

                log.log("Reconciling database...", mirror_to_stdout=True)
                result = reconcile(db,
                                   prior,
                                   current,
                                   hash_size_limit=config.hash_size_limit,
                                   log=log,
                                   history=history)
                log.log("Finished updating database.", mirror_to_stdout=True)

    return result

def create_log_file_paths(log_folder: Path) -> dict[str, Path]:
    """
    Creates `Path` objects representing where to save log files to. This
    function creates unique file names based upon system time, and ensures that
    there isn't a collision between the newly generated names and past log
    files.

    Arguments:
        log_folder:
          A `Path` object representing the folder in which the log files should
          be saved.

    Returns:
        A dict with keys `log` and `csv`. Each key's value represents a unique
        path where the plain text logs and the CSV change history can be
        saved.
    """
    if not log_folder.is_dir():
        raise NotADirectoryError(f"Log folder isn't a directory: {log_folder}")
    log_file_base = log_folder / time.strftime("%Y-%m-%d %H-%M-%S")

    log_file = log_file_base.with_suffix(".log")
    csv_file = log_file_base.with_suffix(".csv.gz")

    if log_file.exists() or csv_file.exists():
        raise FileExistsError("Log file already exists, won't clobber. (Did you run this script twice in one second?)")

    return {
        "log": log_file,
        "csv": csv_file
    }

if __name__ == "__main__":
    sys.exit(main())
