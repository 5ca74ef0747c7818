from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from .vocabulary import VocabularyEntryOut


class ReviewDueResponse(BaseModel):
    """Response model for the current review session.

    出題対象（未復習、または次回復習日時が到来したエントリ）を提示順で返す。
    空の場合も正常応答（"nothing due"）。
    """

    items: list[VocabularyEntryOut]
    count: int


class ReviewScoreRequest(BaseModel):
    """Request model for submitting a familiarity score.

    - score: 1（知らない）〜 5（完全に覚えている）の整数
    範囲と型の検証は ReviewFlow で行い、説明付きの 400 を返す。
    """

    score: Any = Field(
        validation_alias=AliasChoices("score", "familiarity_score", "familiarityScore"),
        description="Familiarity score 1..5 / 習熟度スコア",
    )


class RetentionResponse(BaseModel):
    retention_score: int


class ReviewStatsResponse(BaseModel):
    """進捗の見える化 用の統計レスポンス。

    - total: 保存済みの語数
    - due_now: 現在時点で出題すべき件数
    - reviewed_today: 今日（UTC）レビュー済みの件数
    - retention_score: 習熟度 3 以上の割合（%）
    - by_familiarity: スコア別件数（"1".."5" と "unrated"）
    """

    total: int
    due_now: int
    reviewed_today: int
    retention_score: int
    by_familiarity: dict[str, int]
