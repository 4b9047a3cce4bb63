"""
libbackup Test Suite.

This package contains:
- unit/: Unit tests (in-memory repositories, no files)
- integration/: Integration tests (SQLite, backup files, CLI)
"""
