"""
Command line tools for libbackup.

- cli: create, restore and inspect backups of a SQLite library
"""
