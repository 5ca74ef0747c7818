"""Spaced-repetition scheduling for captured vocabulary.

読書中に保存した単語の復習スケジュールを扱う純粋関数群。I/O を一切持たず、
ストア（永続層）から渡されたエントリに対してのみ計算を行う。

- interval_days: 習熟度スコア → 次回までの日数（固定テーブル）
- review: 1 件のエントリに採点結果を適用した新しいエントリを返す
- select_due / sort_by_due_date: 出題対象の抽出と提示順
- retention_score: 習熟度 3 以上の割合（%）
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Iterable, Optional

INTERVAL_DAYS: dict[int, int] = {1: 1, 2: 3, 3: 7, 4: 14, 5: 30}
MIN_SCORE = 1
MAX_SCORE = 5
KNOWN_THRESHOLD = 3


@dataclass(frozen=True)
class VocabularyEntry:
    id: int
    word: str
    language: str
    date_added: datetime
    translation: Optional[str] = None
    context: Optional[str] = None
    notes: Optional[str] = None
    book_id: Optional[int] = None
    familiarity_score: Optional[int] = None
    last_reviewed: Optional[datetime] = None
    next_review_date: Optional[datetime] = None


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    naive な datetime は UTC とみなす（ローカルタイムゾーン/DST の影響を排除）。
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_valid_score(score: object) -> bool:
    # bool は int のサブクラスだが採点値としては扱わない
    return isinstance(score, int) and not isinstance(score, bool) and MIN_SCORE <= score <= MAX_SCORE


def interval_days(score: object) -> int:
    """Map a familiarity score to the number of days until the next review.

    テーブル外の値（範囲外・None・非整数）はスコア 1 と同じ 1 日に落とす。
    不明なスコアを「遠い将来に復習」と解釈しないための安全側の既定値。
    """

    if not is_valid_score(score):
        return INTERVAL_DAYS[MIN_SCORE]
    return INTERVAL_DAYS[score]  # type: ignore[index]


def review(entry: VocabularyEntry, score: int, reviewed_at: datetime | None = None) -> VocabularyEntry:
    """Apply one review event and return the updated entry.

    familiarity_score / last_reviewed / next_review_date の 3 項目を同時に
    置き換えた新しいインスタンスを返す。入力の entry は変更しない。
    テーブル外のスコアは MIN_SCORE として保存し、間隔と整合させる。
    """

    moment = as_utc(reviewed_at) if reviewed_at is not None else utcnow()
    effective = score if is_valid_score(score) else MIN_SCORE
    return replace(
        entry,
        familiarity_score=effective,
        last_reviewed=moment,
        next_review_date=moment + timedelta(days=interval_days(effective)),
    )


def is_due(entry: VocabularyEntry, as_of: datetime) -> bool:
    if entry.next_review_date is None:
        return True
    return as_utc(entry.next_review_date) <= as_utc(as_of)


def select_due(entries: Iterable[VocabularyEntry], as_of: datetime | None = None) -> list[VocabularyEntry]:
    """Return entries whose review date has arrived (inclusive) or was never set."""

    moment = as_of if as_of is not None else utcnow()
    return [entry for entry in entries if is_due(entry, moment)]


def _due_order_key(entry: VocabularyEntry) -> tuple[int, datetime]:
    if entry.next_review_date is None:
        return (0, as_utc(entry.date_added))
    return (1, as_utc(entry.next_review_date))


def sort_by_due_date(entries: Iterable[VocabularyEntry]) -> list[VocabularyEntry]:
    """Order entries for a review session.

    未復習（next_review_date なし）を先頭に date_added 昇順で並べ、その後に
    next_review_date 昇順。sorted は安定ソートなので同値は入力順を保つ。
    """

    return sorted(entries, key=_due_order_key)


def retention_score(entries: Iterable[VocabularyEntry]) -> int:
    """Percentage (0-100) of entries rated 3 or higher, rounded half-up."""

    items = list(entries)
    total = len(items)
    if total == 0:
        return 0
    known = sum(
        1
        for entry in items
        if is_valid_score(entry.familiarity_score) and entry.familiarity_score >= KNOWN_THRESHOLD  # type: ignore[operator]
    )
    # round(100 * known / total) with .5 rounded up, in integer arithmetic
    return (200 * known + total) // (2 * total)


def familiarity_breakdown(entries: Iterable[VocabularyEntry]) -> dict[str, int]:
    counts: dict[str, int] = {str(score): 0 for score in INTERVAL_DAYS}
    counts["unrated"] = 0
    for entry in entries:
        if is_valid_score(entry.familiarity_score):
            counts[str(entry.familiarity_score)] += 1
        else:
            counts["unrated"] += 1
    return counts
