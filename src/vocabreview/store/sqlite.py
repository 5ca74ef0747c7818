from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

from .. import srs
from ..srs import VocabularyEntry
from .base import EntryNotFoundError, VocabularyStore, check_annotation_changes

_COLUMNS = (
    "id, word, language, translation, context, notes, book_id, "
    "familiarity_score, date_added, last_reviewed, next_review_date"
)
# SQLite INTEGER is a signed 64-bit value; larger ids cannot exist in the table.
_MIN_ROWID = -(2**63)
_MAX_ROWID = 2**63 - 1


def _to_text(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return srs.as_utc(value).isoformat(timespec="microseconds")


def _from_text(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return srs.as_utc(datetime.fromisoformat(value))


def _row_to_entry(row: sqlite3.Row) -> VocabularyEntry:
    date_added = _from_text(row["date_added"])
    if date_added is None:
        raise ValueError(f"vocabulary entry {row['id']} has no date_added")
    return VocabularyEntry(
        id=int(row["id"]),
        word=row["word"],
        language=row["language"],
        translation=row["translation"],
        context=row["context"],
        notes=row["notes"],
        book_id=row["book_id"],
        familiarity_score=row["familiarity_score"],
        date_added=date_added,
        last_reviewed=_from_text(row["last_reviewed"]),
        next_review_date=_from_text(row["next_review_date"]),
    )


class SQLiteVocabularyStore(VocabularyStore):
    """SQLite-backed vocabulary store.

    - timestamps are stored as ISO-8601 UTC text
    - review updates run inside ``BEGIN IMMEDIATE`` so concurrent writers on the
      same row serialise and the three review columns are written together
    - ``:memory:`` keeps one shared connection guarded by a lock
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._shared: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        if db_path == ":memory:":
            self._shared = self._open()
        else:
            self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0, isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA foreign_keys=ON;")
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        if self._shared is not None:
            with self._lock:
                yield self._shared
            return
        conn = self._open()
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        with self._connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS vocabulary_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    word TEXT NOT NULL,
                    language TEXT NOT NULL,
                    translation TEXT,
                    context TEXT,
                    notes TEXT,
                    book_id INTEGER,
                    familiarity_score INTEGER,
                    date_added TEXT NOT NULL,
                    last_reviewed TEXT,
                    next_review_date TEXT
                );
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_vocab_next_review ON vocabulary_entries(next_review_date);"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_vocab_language ON vocabulary_entries(language);")

    @staticmethod
    def _check_id(entry_id: int) -> None:
        if not _MIN_ROWID <= entry_id <= _MAX_ROWID:
            raise EntryNotFoundError(entry_id)

    @staticmethod
    def _fetch(conn: sqlite3.Connection, entry_id: int) -> Optional[sqlite3.Row]:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM vocabulary_entries WHERE id = ?;", (entry_id,))
        return cur.fetchone()

    # --- public API ---
    def get(self, entry_id: int) -> VocabularyEntry:
        self._check_id(entry_id)
        with self._connection() as conn:
            row = self._fetch(conn, entry_id)
        if row is None:
            raise EntryNotFoundError(entry_id)
        return _row_to_entry(row)

    def list_entries(self, language: Optional[str] = None, book_id: Optional[int] = None) -> list[VocabularyEntry]:
        clauses: list[str] = []
        params: list[Any] = []
        if language is not None:
            clauses.append("language = ?")
            params.append(language)
        if book_id is not None:
            clauses.append("book_id = ?")
            params.append(book_id)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connection() as conn:
            cur = conn.execute(f"SELECT {_COLUMNS} FROM vocabulary_entries{where} ORDER BY id ASC;", params)
            return [_row_to_entry(row) for row in cur.fetchall()]

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
        with self._connection() as conn:
            cur = conn.execute(
                """
                INSERT INTO vocabulary_entries(word, language, translation, context, notes, book_id, date_added)
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (word, language, translation, context, notes, book_id, _to_text(added)),
            )
            entry_id = int(cur.lastrowid)
        return VocabularyEntry(
            id=entry_id,
            word=word,
            language=language,
            translation=translation,
            context=context,
            notes=notes,
            book_id=book_id,
            date_added=added,
        )

    def update(self, entry_id: int, **changes: Any) -> VocabularyEntry:
        check_annotation_changes(changes)
        self._check_id(entry_id)
        with self._connection() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            try:
                if changes:
                    assignments = ", ".join(f"{name} = ?" for name in sorted(changes))
                    params = [changes[name] for name in sorted(changes)]
                    conn.execute(
                        f"UPDATE vocabulary_entries SET {assignments} WHERE id = ?;",
                        (*params, entry_id),
                    )
                row = self._fetch(conn, entry_id)
                if row is None:
                    raise EntryNotFoundError(entry_id)
                conn.execute("COMMIT;")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK;")
                raise
        return _row_to_entry(row)

    def delete(self, entry_id: int) -> None:
        self._check_id(entry_id)
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM vocabulary_entries WHERE id = ?;", (entry_id,))
            if cur.rowcount == 0:
                raise EntryNotFoundError(entry_id)

    def update_entry_review(
        self, entry_id: int, score: int, reviewed_at: Optional[datetime] = None
    ) -> VocabularyEntry:
        self._check_id(entry_id)
        with self._connection() as conn:
            # BEGIN IMMEDIATE to avoid concurrent writers on the same row
            conn.execute("BEGIN IMMEDIATE;")
            try:
                row = self._fetch(conn, entry_id)
                if row is None:
                    raise EntryNotFoundError(entry_id)
                updated = srs.review(_row_to_entry(row), score, reviewed_at)
                conn.execute(
                    """
                    UPDATE vocabulary_entries
                    SET familiarity_score = ?, last_reviewed = ?, next_review_date = ?
                    WHERE id = ?;
                    """,
                    (
                        updated.familiarity_score,
                        _to_text(updated.last_reviewed),
                        _to_text(updated.next_review_date),
                        entry_id,
                    ),
                )
                conn.execute("COMMIT;")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK;")
                raise
        return updated

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
            self._shared = None
