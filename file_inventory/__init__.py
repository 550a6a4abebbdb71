"""
Keeps an inode-keyed inventory of the regular files under a directory tree.

Each run walks the tree, compares what it finds against the inventory stored
in an SQLite database, and applies the inserts, updates, and deletes needed
to bring the database back in line with the filesystem.
"""

__version__ = "0.1.0"
