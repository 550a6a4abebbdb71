"""
Reads and validates the settings of a scan run.

Settings come from the command line, optionally layered over a JSON config
file such as:

    {
        "root": "/srv/share",
        "database": "/var/lib/file-inventory/filelist.db",
        "hash_size_limit": 10485760,
        "log_folder": "/var/log/file-inventory"
    }
"""

import json
from argparse import Namespace
from pathlib import Path
from typing import Optional

from file_inventory.reconcile import DEFAULT_HASH_SIZE_LIMIT

DEFAULT_ROOT = "."
DEFAULT_DATABASE = "filelist.db"

CONFIG_KEYS = ("root", "database", "hash_size_limit", "log_folder")

class ScanConfig:
    """
    Every setting a scan run needs.

    Attributes:
        root:
          The directory tree to scan.
        database:
          Where the inventory database lives.
        init:
          Whether to drop and recreate the database before scanning.
        show_sql:
          Whether to echo every statement sent to the database.
        hash_size_limit:
          Files of at most this many bytes are hashed.
        log_folder:
          A folder to write run logs and change history to, or `None`.
    """
    def __init__(self,
                 root: Path | str=DEFAULT_ROOT,
                 database: Path | str=DEFAULT_DATABASE,
                 init: bool=False,
                 show_sql: bool=False,
                 hash_size_limit: int=DEFAULT_HASH_SIZE_LIMIT,
                 log_folder: Optional[Path | str]=None
                ) -> None:
        """
        Raises:
            TypeError:
              A setting has the wrong type.
            ValueError:
              `hash_size_limit` is negative.
        """
        if not isinstance(root, (str, Path)):
            raise TypeError("root must be a string or Path object.")
        if not isinstance(database, (str, Path)):
            raise TypeError("database must be a string or Path object.")
        if log_folder is not None and not isinstance(log_folder, (str, Path)):
            raise TypeError("log_folder must be a string or Path object.")
        if not isinstance(hash_size_limit, int) or isinstance(hash_size_limit, bool):
            raise TypeError("hash_size_limit must be an int.")
        if hash_size_limit < 0:
            raise ValueError(f"hash_size_limit can't be negative: {hash_size_limit}")

        self.root = Path(root)
        self.database = Path(database)
        self.init = bool(init)
        self.show_sql = bool(show_sql)
        self.hash_size_limit = hash_size_limit
        self.log_folder = Path(log_folder) if log_folder is not None else None

    @classmethod
    def from_args(cls, args: Namespace) -> "ScanConfig":
        """
        Builds a config from parsed command line arguments.

        If `args.config` names a config file, its values are used for any
        setting that wasn't given on the command line.
        """
        settings = {}
        if getattr(args, "config", None) is not None:
            settings.update(read_config(args.config))

        for key in CONFIG_KEYS:
            value = getattr(args, key, None)
            if value is not None:
                settings[key] = value

        return cls(
            init=args.init,
            show_sql=args.sql,
            **settings
        )

    def __repr__(self) -> str:
        return (f"ScanConfig(root={str(self.root)!r}, database={str(self.database)!r}, "
                f"init={self.init}, show_sql={self.show_sql}, "
                f"hash_size_limit={self.hash_size_limit}, "
                f"log_folder={str(self.log_folder) if self.log_folder else None!r})")

def read_config(config_file: Path) -> dict:
    """
    Reads the JSON config file at the given path. Returns a dict holding the
    settings it contains.

    Raises:
        FileNotFoundError:
          No file exists at `config_file`.
        ValueError:
          The file isn't a JSON object, or it contains an unknown key.
        TypeError:
          A setting in the file has the wrong type.
    """
    config_file = Path(config_file)
    if not config_file.is_file():
        raise FileNotFoundError(f"Config file specified doesn't exist: {config_file}")

    with config_file.open(mode="rt") as f:
        config = json.load(f)

    if not isinstance(config, dict):
        raise ValueError("This doesn't appear to be a valid config file.")

    for key in config:
        if key not in CONFIG_KEYS:
            raise ValueError(f"Unknown key in config file: {key}")

    for key in ("root", "database", "log_folder"):
        if key in config and not isinstance(config[key], str):
            raise TypeError(f"'{key}' in the config file must be a string.")

    if "hash_size_limit" in config:
        limit = config["hash_size_limit"]
        if not isinstance(limit, int) or isinstance(limit, bool):
            raise TypeError("'hash_size_limit' in the config file must be an integer.")

    return config
