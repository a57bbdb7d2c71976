import pytest


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    return str(tmp_path / "test_scheduler.db")


@pytest.fixture
def tmp_store(tmp_path):
    """Provide a temporary path for the JSON key-value store."""
    return str(tmp_path / "local_storage.json")
