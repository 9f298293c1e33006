import pytest

from bookshelf.config import settings
from bookshelf.main import StoreManager
from bookshelf.store import BookStore
from bookshelf.ui_helpers import OUTPUT_MODE_ENV


@pytest.fixture
def db_file(tmp_path):
    # tmp_path is unique per test; node names can contain "/"
    return str(tmp_path / "books.db")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, db_file):
    # Point the CLI and API at the per-test database
    monkeypatch.setattr(settings, "db_file", db_file)
    monkeypatch.delenv(OUTPUT_MODE_ENV, raising=False)
    StoreManager.reset()
    yield
    StoreManager.reset()


@pytest.fixture
def store(db_file):
    store = BookStore(db_file)
    store.initialize()
    return store
