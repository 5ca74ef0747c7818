from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..dependencies import get_review_flow
from ..flows.review import InvalidScoreError, ReviewFlow
from ..models.review import (
    RetentionResponse,
    ReviewDueResponse,
    ReviewScoreRequest,
    ReviewStatsResponse,
)
from ..models.vocabulary import VocabularyEntryOut
from ..store import EntryNotFoundError

router = APIRouter(tags=["review"])


@router.get("/due", response_model=ReviewDueResponse, summary="復習対象の語を取得")
async def review_due(
    request: Request,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    language: Optional[str] = Query(default=None, min_length=1),
    as_of: Optional[datetime] = Query(default=None, description="判定時刻（省略時は現在時刻）"),
    flow: ReviewFlow = Depends(get_review_flow),
) -> ReviewDueResponse:
    """Return due entries, never-reviewed first, then earliest next_review_date."""
    effective_limit = limit or request.app.state.settings.review_session_limit or None
    items = flow.due_session(as_of=as_of, limit=effective_limit, language=language)
    return ReviewDueResponse(items=[VocabularyEntryOut.from_entry(it) for it in items], count=len(items))


@router.put("/{entry_id}", response_model=VocabularyEntryOut, summary="採点して次回復習日時を更新")
async def review_submit(
    entry_id: int,
    req: ReviewScoreRequest,
    flow: ReviewFlow = Depends(get_review_flow),
) -> VocabularyEntryOut:
    """Record a 1..5 familiarity score and return the rescheduled entry."""
    try:
        updated = flow.submit(entry_id, req.score)
    except InvalidScoreError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except EntryNotFoundError as exc:
        raise HTTPException(status_code=404, detail="vocabulary entry not found") from exc
    return VocabularyEntryOut.from_entry(updated)


@router.get("/retention", response_model=RetentionResponse, summary="定着率（%）")
async def review_retention(
    language: Optional[str] = Query(default=None, min_length=1),
    flow: ReviewFlow = Depends(get_review_flow),
) -> RetentionResponse:
    return RetentionResponse(retention_score=flow.retention(language=language))


@router.get("/stats", response_model=ReviewStatsResponse, summary="進捗統計（残数/今日の復習数/定着率）")
async def review_stats(flow: ReviewFlow = Depends(get_review_flow)) -> ReviewStatsResponse:
    return ReviewStatsResponse(**flow.stats())
