"""Pytest configuration shared by the API and store tests."""

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Use the in-memory backend by default so importing the app never touches disk.
os.environ.setdefault("VOCAB_STORE_BACKEND", "memory")

from vocabreview.config import Settings  # noqa: E402
from vocabreview.logging import configure_logging  # noqa: E402
from vocabreview.main import create_app  # noqa: E402
from vocabreview.metrics import registry  # noqa: E402
from vocabreview.store import InMemoryVocabularyStore, SQLiteVocabularyStore, VocabularyStore  # noqa: E402


def _make_store(kind: str, tmp_path: Path) -> VocabularyStore:
    if kind == "memory":
        return InMemoryVocabularyStore()
    if kind == "sqlite":
        return SQLiteVocabularyStore(db_path=str(tmp_path / "vocab" / "store.sqlite3"))
    return SQLiteVocabularyStore(db_path=":memory:")


@pytest.fixture(params=["memory", "sqlite", "sqlite-memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    """Every store backend, so behaviour is checked identically across them."""
    backend = _make_store(request.param, tmp_path)
    yield backend
    backend.close()


@pytest.fixture(autouse=True)
def _reset_metrics():
    # Rebind the log handler to this test's stderr before anything logs.
    configure_logging("INFO")
    registry.reset()
    yield
    registry.reset()


@pytest.fixture()
def memory_store() -> InMemoryVocabularyStore:
    return InMemoryVocabularyStore()


@pytest.fixture()
def client(memory_store: InMemoryVocabularyStore):
    app = create_app(store=memory_store, app_settings=Settings(vocab_store_backend="memory"))
    with TestClient(app) as test_client:
        yield test_client
