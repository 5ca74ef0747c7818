import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from vocabreview import srs
from vocabreview.config import Settings
from vocabreview.store import (
    EntryNotFoundError,
    InMemoryVocabularyStore,
    SQLiteVocabularyStore,
    create_store,
)


def test_insert_assigns_increasing_ids_and_leaves_review_fields_unset(store):
    first = store.insert("converge", "en", translation="収束する", book_id=3)
    second = store.insert("robust", "en")

    assert second.id > first.id
    assert first.familiarity_score is None
    assert first.last_reviewed is None
    assert first.next_review_date is None
    assert first.date_added.tzinfo is not None
    assert store.get(first.id) == first


def test_insert_rejects_blank_word(store):
    with pytest.raises(ValueError):
        store.insert("   ", "en")


def test_list_entries_filters_by_language_and_book(store):
    a = store.insert("Haus", "de", book_id=1)
    b = store.insert("house", "en", book_id=1)
    c = store.insert("maison", "fr", book_id=2)

    assert [e.id for e in store.list_entries()] == [a.id, b.id, c.id]
    assert [e.id for e in store.list_entries(language="en")] == [b.id]
    assert [e.id for e in store.list_entries(book_id=1)] == [a.id, b.id]
    assert store.list_entries(language="de", book_id=2) == []


def test_get_missing_raises_not_found(store):
    with pytest.raises(EntryNotFoundError) as excinfo:
        store.get(999)
    assert excinfo.value.entry_id == 999


def test_update_changes_only_annotations(store):
    entry = store.insert("yield", "en")
    updated = store.update(entry.id, translation="産出する", notes="verb")

    assert updated.translation == "産出する"
    assert updated.notes == "verb"
    assert updated.word == "yield"
    assert updated.date_added == entry.date_added
    assert store.get(entry.id) == updated


@pytest.mark.parametrize("field", ["familiarity_score", "next_review_date", "last_reviewed", "id", "date_added"])
def test_update_rejects_scheduler_owned_fields(store, field):
    entry = store.insert("via", "en")
    with pytest.raises(ValueError):
        store.update(entry.id, **{field: None})
    assert store.get(entry.id) == entry


def test_update_missing_raises_not_found(store):
    with pytest.raises(EntryNotFoundError):
        store.update(42, notes="x")


def test_delete_removes_entry(store):
    entry = store.insert("feasible", "en")
    store.delete(entry.id)
    with pytest.raises(EntryNotFoundError):
        store.get(entry.id)
    with pytest.raises(EntryNotFoundError):
        store.delete(entry.id)


def test_update_entry_review_sets_all_three_fields(store):
    entry = store.insert("insight", "en")
    reviewed_at = datetime(2024, 1, 1, 9, 30, tzinfo=UTC)

    updated = store.update_entry_review(entry.id, 3, reviewed_at)

    assert updated.familiarity_score == 3
    assert updated.last_reviewed == reviewed_at
    assert updated.next_review_date == datetime(2024, 1, 8, 9, 30, tzinfo=UTC)
    assert store.get(entry.id) == updated


@pytest.mark.parametrize("score", [0, 9])
def test_update_entry_review_stores_lowest_score_for_out_of_table_values(store, score):
    entry = store.insert("outlier", "en")
    reviewed_at = datetime(2024, 1, 1, tzinfo=UTC)

    updated = store.update_entry_review(entry.id, score, reviewed_at)

    assert updated.familiarity_score == 1
    assert updated.next_review_date == datetime(2024, 1, 2, tzinfo=UTC)
    assert store.get(entry.id).familiarity_score == 1


def test_ids_beyond_64_bit_range_are_not_found(store):
    keep = store.insert("bounded", "en")
    huge = 2**64

    with pytest.raises(EntryNotFoundError):
        store.get(huge)
    with pytest.raises(EntryNotFoundError):
        store.update(huge, notes="x")
    with pytest.raises(EntryNotFoundError):
        store.delete(huge)
    with pytest.raises(EntryNotFoundError):
        store.update_entry_review(huge, 3)
    assert store.list_entries() == [keep]


def test_update_entry_review_on_missing_id_leaves_others_unchanged(store):
    keep = store.insert("approximate", "en")
    store.update_entry_review(keep.id, 2, datetime(2024, 1, 1, tzinfo=UTC))
    before = store.list_entries()

    with pytest.raises(EntryNotFoundError):
        store.update_entry_review(keep.id + 100, 5)

    assert store.list_entries() == before


def test_update_entry_review_does_not_touch_other_entries(store):
    a = store.insert("alpha", "en")
    b = store.insert("beta", "en")
    store.update_entry_review(b.id, 4, datetime(2024, 2, 1, tzinfo=UTC))

    store.update_entry_review(a.id, 1, datetime(2024, 3, 1, tzinfo=UTC))

    assert store.get(b.id).next_review_date == datetime(2024, 2, 15, tzinfo=UTC)


def test_list_entries_due_for_review(store):
    as_of = datetime(2024, 1, 10, tzinfo=UTC)
    new = store.insert("new", "en")
    due = store.insert("due", "en")
    later = store.insert("later", "en")
    store.update_entry_review(due.id, 1, as_of - timedelta(days=1))
    store.update_entry_review(later.id, 5, as_of)

    ids = {e.id for e in store.list_entries_due_for_review(as_of)}

    assert ids == {new.id, due.id}


def test_timestamps_round_trip_with_microseconds(store):
    entry = store.insert("precise", "en", date_added=datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=UTC))
    reviewed_at = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=UTC)
    store.update_entry_review(entry.id, 2, reviewed_at)

    stored = store.get(entry.id)

    assert stored.date_added == datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=UTC)
    assert stored.last_reviewed == reviewed_at


def test_concurrent_reviews_of_one_entry_never_split_fields(store):
    entry = store.insert("concurrent", "en")
    base = datetime(2024, 1, 1, tzinfo=UTC)
    jobs = [(score, base + timedelta(minutes=i)) for i, score in enumerate([1, 2, 3, 4, 5] * 8)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda job: store.update_entry_review(entry.id, *job), jobs))

    final = store.get(entry.id)
    assert final.familiarity_score in {1, 2, 3, 4, 5}
    assert final.next_review_date == final.last_reviewed + timedelta(days=srs.interval_days(final.familiarity_score))
    assert (final.familiarity_score, final.last_reviewed) in set(jobs)


def test_sqlite_store_persists_across_instances(tmp_path: Path):
    db_path = str(tmp_path / "nested" / "dir" / "vocab.sqlite3")
    first = SQLiteVocabularyStore(db_path=db_path)
    entry = first.insert("persist", "en", context="ctx")
    first.update_entry_review(entry.id, 4, datetime(2024, 1, 1, tzinfo=UTC))

    reopened = SQLiteVocabularyStore(db_path=db_path)

    stored = reopened.get(entry.id)
    assert stored.context == "ctx"
    assert stored.next_review_date == datetime(2024, 1, 15, tzinfo=UTC)


def test_create_store_selects_backend(tmp_path: Path):
    assert isinstance(create_store(Settings(vocab_store_backend="memory")), InMemoryVocabularyStore)
    sqlite_store = create_store(
        Settings(vocab_store_backend="SQLite", vocab_db_path=str(tmp_path / "s.sqlite3"))
    )
    assert isinstance(sqlite_store, SQLiteVocabularyStore)


def test_sqlite_row_without_date_added_is_reported(tmp_path: Path):
    db_path = str(tmp_path / "broken.sqlite3")
    backend = SQLiteVocabularyStore(db_path=db_path)
    entry = backend.insert("orphan", "en")
    with sqlite3.connect(db_path) as conn:
        conn.execute("UPDATE vocabulary_entries SET date_added = '' WHERE id = ?;", (entry.id,))

    with pytest.raises(ValueError, match="has no date_added"):
        backend.get(entry.id)
