from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional

from .. import srs
from ..srs import VocabularyEntry
from .base import EntryNotFoundError, VocabularyStore, check_annotation_changes


class InMemoryVocabularyStore(VocabularyStore):
    """Process-local store backed by a dict guarded by a single lock.

    エントリは immutable なので、ロック内で置き換えるだけで review の 3 項目が
    別々の書き手に分かれることはない（同一 id への同時採点は後勝ち）。
    """

    def __init__(self) -> None:
        self._entries: dict[int, VocabularyEntry] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def get(self, entry_id: int) -> VocabularyEntry:
        with self._lock:
            try:
                return self._entries[entry_id]
            except KeyError:
                raise EntryNotFoundError(entry_id) from None

    def list_entries(self, language: Optional[str] = None, book_id: Optional[int] = None) -> list[VocabularyEntry]:
        with self._lock:
            entries = [self._entries[key] for key in sorted(self._entries)]
        if language is not None:
            entries = [e for e in entries if e.language == language]
        if book_id is not None:
            entries = [e for e in entries if e.book_id == book_id]
        return entries

    def insert(
        self,
        word: str,
        language: str,
        translation: Optional[str] = None,
        context: Optional[str] = None,
        notes: Optional[str] = None,
        book_id: Optional[int] = None,
        date_added: Optional[datetime] = None,
    ) -> VocabularyEntry:
        check_annotation_changes({"word": word, "language": language})
        added = srs.as_utc(date_added) if date_added is not None else srs.utcnow()
        with self._lock:
            entry = VocabularyEntry(
                id=next(self._ids),
                word=word,
                language=language,
                translation=translation,
                context=context,
                notes=notes,
                book_id=book_id,
                date_added=added,
            )
            self._entries[entry.id] = entry
            return entry

    def update(self, entry_id: int, **changes: Any) -> VocabularyEntry:
        check_annotation_changes(changes)
        with self._lock:
            current = self._entries.get(entry_id)
            if current is None:
                raise EntryNotFoundError(entry_id)
            updated = replace(current, **changes)
            self._entries[entry_id] = updated
            return updated

    def delete(self, entry_id: int) -> None:
        with self._lock:
            if self._entries.pop(entry_id, None) is None:
                raise EntryNotFoundError(entry_id)

    def update_entry_review(
        self, entry_id: int, score: int, reviewed_at: Optional[datetime] = None
    ) -> VocabularyEntry:
        with self._lock:
            current = self._entries.get(entry_id)
            if current is None:
                raise EntryNotFoundError(entry_id)
            updated = srs.review(current, score, reviewed_at)
            self._entries[entry_id] = updated
            return updated
