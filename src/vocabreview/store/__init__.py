from __future__ import annotations

from ..config import Settings
from ..logging import logger
from .base import ANNOTATION_FIELDS, EntryNotFoundError, VocabularyStore
from .memory import InMemoryVocabularyStore
from .sqlite import SQLiteVocabularyStore


def create_store(settings: Settings) -> VocabularyStore:
    """設定に応じた語彙ストアを初期化する。

    - memory: プロセス内 dict（再起動で消える。テスト・デモ用）
    - sqlite: VOCAB_DB_PATH のファイルへ永続化
    """

    backend = settings.vocab_store_backend
    if backend == "memory":
        store: VocabularyStore = InMemoryVocabularyStore()
    elif backend == "sqlite":
        store = SQLiteVocabularyStore(db_path=settings.vocab_db_path)
    else:
        raise ValueError(f"unknown vocabulary store backend: {backend!r}")
    logger.info("store_initialised", backend=backend)
    return store


__all__ = [
    "ANNOTATION_FIELDS",
    "EntryNotFoundError",
    "InMemoryVocabularyStore",
    "SQLiteVocabularyStore",
    "VocabularyStore",
    "create_store",
]
