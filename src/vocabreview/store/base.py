from __future__ import annotations

import abc
from datetime import datetime
from typing import Any, Optional

from .. import srs
from ..srs import VocabularyEntry

ANNOTATION_FIELDS = frozenset({"word", "language", "translation", "context", "notes", "book_id"})


class EntryNotFoundError(LookupError):
    """Raised when a vocabulary entry id does not exist in the store."""

    def __init__(self, entry_id: int) -> None:
        super().__init__(f"vocabulary entry {entry_id} not found")
        self.entry_id = entry_id


def check_annotation_changes(changes: dict[str, Any]) -> None:
    """Reject updates touching fields owned by the scheduler or the store.

    review 系の 3 項目は採点イベント以外で書き換えてはならず、id/date_added は不変。
    """

    forbidden = sorted(set(changes) - ANNOTATION_FIELDS)
    if forbidden:
        raise ValueError(f"fields cannot be updated directly: {', '.join(forbidden)}")
    if "word" in changes and not str(changes["word"] or "").strip():
        raise ValueError("word must be a non-empty string")
    if "language" in changes and not str(changes["language"] or "").strip():
        raise ValueError("language must be a non-empty string")


class VocabularyStore(abc.ABC):
    """Storage collaborator for vocabulary entries.

    id の採番は実装側が担う。スケジューラ（srs）はストアを知らず、ストアが
    update_entry_review の内部で srs.review を呼び出して 1 エントリ単位で
    アトミックに保存する。
    """

    @abc.abstractmethod
    def get(self, entry_id: int) -> VocabularyEntry:
        """Return the entry or raise :class:`EntryNotFoundError`."""

    @abc.abstractmethod
    def list_entries(self, language: Optional[str] = None, book_id: Optional[int] = None) -> list[VocabularyEntry]:
        """Return a snapshot of all entries in id order."""

    @abc.abstractmethod
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
        """Create a never-reviewed entry and return it with its new id."""

    @abc.abstractmethod
    def update(self, entry_id: int, **changes: Any) -> VocabularyEntry:
        """Change annotation fields of an entry."""

    @abc.abstractmethod
    def delete(self, entry_id: int) -> None:
        """Remove an entry or raise :class:`EntryNotFoundError`."""

    @abc.abstractmethod
    def update_entry_review(
        self, entry_id: int, score: int, reviewed_at: Optional[datetime] = None
    ) -> VocabularyEntry:
        """Apply a review event atomically and return the updated entry."""

    def list_entries_due_for_review(
        self, as_of: Optional[datetime] = None, language: Optional[str] = None
    ) -> list[VocabularyEntry]:
        return srs.select_due(self.list_entries(language=language), as_of)

    def close(self) -> None:
        return None
