"""
Handles creation and modification of the file inventory in an SQLite database.
"""

import sqlite3
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Generator, Iterable, Optional

from file_inventory import utils
from file_inventory.inventory_record import DbInventoryRecord, InventoryRecord

TABLE_NAME = "file_infos"

_CREATE_TABLE_SQL = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        inode integer primary key not null,
        name text not null,
        path text not null,
        size integer not null,
        mod_time integer not null,
        hash text
    );
"""

_INDEXED_COLUMNS = ("name", "path", "size", "mod_time", "hash")

# SQLite integers are signed 64 bit, inodes are unsigned 64 bit.
_INODE_WRAP = 2 ** 64
_MAX_SQL_INT = 2 ** 63 - 1

class InventoryDb:
    """
    Connects to, and creates if needed, a file inventory database.

    The database holds one row per inode, tracking the file's name, path,
    size, modification time, and hash. Writes are only allowed inside
    `transaction()`, which commits or rolls back all of them together.

    Attributes:
        readonly:
          A bool representing whether database is in readonly mode.
        db_path:
          A `Path` of where the database exists.
        in_transaction:
          A bool representing whether a transaction is currently open.
    """

    def __init__(self,
                 db_path: Path | str,
                 readonly: bool=False,
                 show_sql: bool=False,
                 sql_logger: Optional[Callable[[str], None]]=None
                ) -> None:
        """
        Opens an existing database, or creates and initializes a new one.

        Args:
            db_path:
              Path to the database. When not in readonly mode, a missing
              database is created along with its schema.
            readonly:
              Whether to open an existing database in readonly mode.
            show_sql:
              Whether every statement sent to SQLite should be passed to
              `sql_logger`.
            sql_logger:
              A function called with the text of each statement when
              `show_sql` is true. Defaults to printing to stdout.

        Raises:
            TypeError:
              `db_path` isn't a string or `Path`.
            FileNotFoundError:
              Raised when opening in readonly mode, but no file exists at
              `db_path`.
            ValueError:
              A file exists at `db_path`, but it isn't an SQLite database.
        """
        if not isinstance(db_path, (str, Path)):
            raise TypeError("db_path must be a string or Path object.")

        db_path = Path(db_path)
        # Only resolve strictly when database already exists.
        self._db_path = db_path.resolve(strict=readonly)
        self._readonly = bool(readonly)
        self._conn: Optional[sqlite3.Connection] = None
        self._is_closed = False

        if db_path.exists():
            if not db_path.is_file():
                raise ValueError(f"Database path given isn't a file: {db_path}")
            # An empty file is a valid, empty SQLite database.
            if db_path.stat().st_size > 0 and not utils.is_sqlite_db(db_path):
                raise ValueError(f"Database path points to a non-database file: {db_path}")

        self._connect(db_path)
        self._conn.row_factory = sqlite3.Row
        if show_sql:
            self._conn.set_trace_callback(sql_logger or _print_sql)

        if not self._readonly:
            self._create_schema()

    def __enter__(self) -> "InventoryDb":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def load_all(self) -> dict[int, InventoryRecord]:
        """Returns every record in the database, keyed by inode."""
        records = {}
        for record in self._iter_records(f"SELECT * FROM {TABLE_NAME}"):
            records[record.inode] = record
        return records

    def get_record(self, inode: int) -> DbInventoryRecord | None:
        """Finds the record stored for `inode`, or `None` if there isn't one."""
        for record in self._iter_records(f"SELECT * FROM {TABLE_NAME} WHERE inode = ?",
                                         (_to_sql_inode(inode),)):
            return record
        return None

    def count(self) -> int:
        """Returns the number of records in the database."""
        cur = self._conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}")
        result = cur.fetchone()[0]
        cur.close()
        return result

    @contextmanager
    def transaction(self) -> Generator["InventoryDb", None, None]:
        """
        Runs the body of a `with` block as a single atomic transaction.

        All `create`, `update`, and `delete` calls made inside the block are
        committed together when it exits normally. If anything raises, every
        change is rolled back and the exception is re-raised unchanged.

        Raises:
            RuntimeError:
              The database is readonly, or a transaction is already open.
        """
        self._assert_writable("start a transaction")
        if self._conn.in_transaction:
            raise RuntimeError("A transaction is already in progress.")

        self._conn.execute("BEGIN")
        try:
            yield self
            self._conn.commit()
        except BaseException:
            if self._conn.in_transaction:
                self._conn.rollback()
            raise

    def create(self, record: InventoryRecord) -> None:
        """Adds `record` to the database."""
        self._assert_in_transaction("add a record")
        if not isinstance(record, InventoryRecord):
            raise TypeError("Record given isn't an InventoryRecord object.")

        self._conn.execute(
            f"INSERT INTO {TABLE_NAME} (inode, name, path, size, mod_time, hash) "
            "VALUES (:inode, :name, :path, :size, :mod_time, :hash)",
            _sql_params(record)
        )

    def update(self, record: InventoryRecord) -> None:
        """
        Replaces every stored field of the record with the same inode as
        `record`.

        Raises:
            LookupError:
              No record with that inode is stored.
        """
        self._assert_in_transaction("update a record")
        if not isinstance(record, InventoryRecord):
            raise TypeError("Record given isn't an InventoryRecord object.")

        cur = self._conn.execute(
            f"UPDATE {TABLE_NAME} SET name = :name, path = :path, size = :size, "
            "mod_time = :mod_time, hash = :hash WHERE inode = :inode",
            _sql_params(record)
        )
        rowcount = cur.rowcount
        cur.close()
        if rowcount < 1:
            raise LookupError(f"Updating record failed because inode {record.inode} doesn't exist in the database: {record.path}")

    def delete(self, records: Iterable[InventoryRecord]) -> None:
        """
        Removes all of `records` from the database in one batch.

        Raises:
            LookupError:
              At least one of the records isn't stored.
        """
        self._assert_in_transaction("delete records")
        records = list(records)
        for record in records:
            if not isinstance(record, InventoryRecord):
                raise TypeError("Record given isn't an InventoryRecord object.")
        if not records:
            return

        cur = self._conn.executemany(
            f"DELETE FROM {TABLE_NAME} WHERE inode = ?",
            [(_to_sql_inode(record.inode),) for record in records]
        )
        rowcount = cur.rowcount
        cur.close()
        if rowcount < len(records):
            raise LookupError(f"Deleting records failed: expected to delete {len(records)}, but only {rowcount} were in the database.")

    def reinitialize(self) -> None:
        """Drops every record by recreating the schema from scratch."""
        self._assert_writable("reinitialize the database")
        if self._conn.in_transaction:
            raise RuntimeError("Can't reinitialize the database during a transaction.")

        self._conn.execute(f"DROP TABLE IF EXISTS {TABLE_NAME}")
        self._create_schema()

    def close(self) -> None:
        """Closes the database."""
        if self._is_closed:
            return

        if self._conn.in_transaction:
            print("WARNING: Closing database with unsaved transactions.", file=sys.stderr)
        self._conn.close()
        self._is_closed = True

    def _iter_records(self,
                      sql: str,
                      params: tuple=()
                     ) -> Generator[DbInventoryRecord, None, None]:
        cur = self._conn.execute(sql, params)
        try:
            for row in cur:
                file_dict = dict(row)
                file_dict["inode"] = _from_sql_inode(file_dict["inode"])
                yield DbInventoryRecord(file_dict)
        finally:
            cur.close()

    def _create_schema(self) -> None:
        self._conn.execute(_CREATE_TABLE_SQL)
        for column in _INDEXED_COLUMNS:
            self._conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_{column} ON {TABLE_NAME} ({column})"
            )

    def _connect(self, db_path: Path) -> None:
        if self._readonly:
            if not db_path.is_file():
                raise FileNotFoundError(f"Database path given doesn't exist: {db_path}")
            uri = self._db_path.as_uri() + "?mode=ro"
            self._conn = sqlite3.connect(uri, uri=True, isolation_level=None)
        else:
            self._conn = sqlite3.connect(db_path, isolation_level=None)

    def _assert_writable(self, action: str) -> None:
        if self._readonly:
            raise RuntimeError(f"Can't {action} while in read-only mode.")

    def _assert_in_transaction(self, action: str) -> None:
        self._assert_writable(action)
        if not self._conn.in_transaction:
            raise RuntimeError(f"Can't {action} outside of a transaction.")

    @property
    def db_path(self) -> str:
        """The path the database is stored at."""
        return str(self._db_path)

    @property
    def readonly(self) -> bool:
        """Whether the database is in readonly mode."""
        return self._readonly

    @property
    def in_transaction(self) -> bool:
        """Whether a transaction is currently open on the database."""
        return self._conn.in_transaction

def _sql_params(record: InventoryRecord) -> dict:
    sql_dict = record.as_sql_dict()
    sql_dict["inode"] = _to_sql_inode(sql_dict["inode"])
    return sql_dict

def _to_sql_inode(inode: int) -> int:
    if inode > _MAX_SQL_INT:
        return inode - _INODE_WRAP
    return inode

def _from_sql_inode(value: int) -> int:
    if value < 0:
        return value + _INODE_WRAP
    return value

def _print_sql(statement: str) -> None:
    print(f"SQL: {statement}")
