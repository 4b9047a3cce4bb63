"""
Dump module for libbackup.

Builds the portable Backup snapshot from live repositories.
"""

from .builder import DumpBuilder

__all__ = ["DumpBuilder"]
