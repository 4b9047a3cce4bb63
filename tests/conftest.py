"""
Shared fixtures for libbackup tests.
"""

import tempfile

import pytest

from tracker.libbackup.store import InMemoryLibraryStore


@pytest.fixture
def store():
    """Fresh in-memory library store."""
    return InMemoryLibraryStore()


@pytest.fixture
def repositories(store):
    return store.repositories()


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir
