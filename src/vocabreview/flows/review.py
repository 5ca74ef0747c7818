from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from .. import srs
from ..logging import logger
from ..metrics import registry
from ..srs import VocabularyEntry
from ..store import EntryNotFoundError, VocabularyStore


class InvalidScoreError(ValueError):
    """Raised when a familiarity score is not an integer in [1, 5]."""

    def __init__(self, score: object) -> None:
        super().__init__(
            f"familiarity score must be an integer between {srs.MIN_SCORE} and {srs.MAX_SCORE}"
        )
        self.score = score


class ReviewFlow:
    """Review-session use cases over a vocabulary store.

    復習セッションの取得・採点・進捗集計をまとめるフロー。
    スコア範囲の検証はここ（境界層）で行い、srs 側のフォールバックには頼らない。
    """

    def __init__(self, store: VocabularyStore, *, clock: Callable[[], datetime] = srs.utcnow) -> None:
        self.store = store
        self.clock = clock

    def due_session(
        self,
        as_of: Optional[datetime] = None,
        limit: Optional[int] = None,
        language: Optional[str] = None,
    ) -> list[VocabularyEntry]:
        """Return due entries in review order, optionally truncated to ``limit``."""
        moment = as_of if as_of is not None else self.clock()
        items = srs.sort_by_due_date(self.store.list_entries_due_for_review(moment, language=language))
        if limit:
            items = items[:limit]
        return items

    def submit(self, entry_id: int, score: object, reviewed_at: Optional[datetime] = None) -> VocabularyEntry:
        """Validate the score and record one review event.

        - score が 1..5 の整数でなければ InvalidScoreError（ストアは触らない）
        - 対象が存在しなければ EntryNotFoundError をそのまま送出
        """
        if not srs.is_valid_score(score):
            logger.info("review_rejected", entry_id=entry_id, score=repr(score))
            raise InvalidScoreError(score)
        moment = reviewed_at if reviewed_at is not None else self.clock()
        try:
            updated = self.store.update_entry_review(entry_id, score, moment)  # type: ignore[arg-type]
        except EntryNotFoundError:
            logger.warning("review_entry_not_found", entry_id=entry_id)
            raise
        registry.record_review(updated.familiarity_score or srs.MIN_SCORE)
        logger.info(
            "review_submitted",
            entry_id=entry_id,
            score=updated.familiarity_score,
            interval_days=srs.interval_days(updated.familiarity_score),
            next_review_date=updated.next_review_date.isoformat() if updated.next_review_date else None,
        )
        return updated

    def retention(self, language: Optional[str] = None) -> int:
        return srs.retention_score(self.store.list_entries(language=language))

    def stats(self, as_of: Optional[datetime] = None) -> dict[str, Any]:
        """Dashboard summary computed from one snapshot of the store.

        reviewed_today は as_of と同じ UTC 暦日に last_reviewed がある件数。
        """
        moment = srs.as_utc(as_of if as_of is not None else self.clock())
        entries = self.store.list_entries()
        day_start = moment.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1)
        reviewed_today = sum(
            1
            for entry in entries
            if entry.last_reviewed is not None and day_start <= srs.as_utc(entry.last_reviewed) < day_end
        )
        return {
            "total": len(entries),
            "due_now": len(srs.select_due(entries, moment)),
            "reviewed_today": reviewed_today,
            "retention_score": srs.retention_score(entries),
            "by_familiarity": srs.familiarity_breakdown(entries),
        }
