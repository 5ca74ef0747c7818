from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..srs import VocabularyEntry


class VocabularyEntryOut(BaseModel):
    """A vocabulary entry with its review metadata.

    読書中に保存した単語と、採点によって更新される復習情報。
    """

    id: int
    word: str
    language: str
    translation: Optional[str] = None
    context: Optional[str] = None
    notes: Optional[str] = None
    book_id: Optional[int] = None
    familiarity_score: Optional[int] = None
    date_added: datetime
    last_reviewed: Optional[datetime] = None
    next_review_date: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: VocabularyEntry) -> "VocabularyEntryOut":
        return cls(
            id=entry.id,
            word=entry.word,
            language=entry.language,
            translation=entry.translation,
            context=entry.context,
            notes=entry.notes,
            book_id=entry.book_id,
            familiarity_score=entry.familiarity_score,
            date_added=entry.date_added,
            last_reviewed=entry.last_reviewed,
            next_review_date=entry.next_review_date,
        )


class VocabularyCreateRequest(BaseModel):
    """Request model for capturing a new word.

    採点前の新規エントリ。familiarity_score や復習日時は受け付けない。
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "examples": [
                {
                    "word": "converge",
                    "language": "en",
                    "translation": "収束する",
                    "context": "The lines converge at the horizon.",
                    "book_id": 1,
                }
            ]
        },
    )

    word: str = Field(min_length=1, max_length=200, description="保存する語（1..200文字）")
    language: str = Field(min_length=1, max_length=16, description="言語コード（en, ja など）")
    translation: Optional[str] = None
    context: Optional[str] = None
    notes: Optional[str] = None
    book_id: Optional[int] = None


class VocabularyUpdateRequest(BaseModel):
    """注釈フィールドのみの部分更新。復習関連の項目は採点 API でのみ変更できる。"""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    word: Optional[str] = Field(default=None, min_length=1, max_length=200)
    language: Optional[str] = Field(default=None, min_length=1, max_length=16)
    translation: Optional[str] = None
    context: Optional[str] = None
    notes: Optional[str] = None
    book_id: Optional[int] = None
