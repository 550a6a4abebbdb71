"""
Computes content digests of files.
"""

import hashlib
import os

CHUNK_SIZE = 8 * 1024 * 1024 #8MB

def hash_file(path: str | os.PathLike) -> str:
    """
    Returns the SHA256 digest of the file at `path` as a lowercase hex string.

    The file is read in chunks of `CHUNK_SIZE` bytes, so large files are never
    loaded into memory at once.

    Raises:
        OSError:
          The file couldn't be opened or read (missing, permission denied,
          I/O error, or a directory was given).
    """
    sha = hashlib.sha256()
    with open(path, mode="rb") as f:
        while True:
            data = f.read(CHUNK_SIZE)
            if data:
                sha.update(data)
            else:
                break
    return sha.hexdigest()
