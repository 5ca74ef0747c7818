from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..dependencies import get_store
from ..logging import logger
from ..models.vocabulary import (
    VocabularyCreateRequest,
    VocabularyEntryOut,
    VocabularyUpdateRequest,
)
from ..srs import VocabularyEntry
from ..store import EntryNotFoundError, VocabularyStore

router = APIRouter(tags=["vocabulary"])

_NOT_FOUND = "vocabulary entry not found"


def _matches_query(entry: VocabularyEntry, query: str) -> bool:
    needle = query.lower()
    return any(
        needle in value.lower()
        for value in (entry.word, entry.translation, entry.notes)
        if value
    )


@router.get("/", response_model=list[VocabularyEntryOut], summary="保存済みの語の一覧")
async def list_vocabulary(
    language: Optional[str] = Query(default=None, min_length=1),
    book_id: Optional[int] = Query(default=None),
    familiarity_score: Optional[int] = Query(default=None, ge=1, le=5),
    q: Optional[str] = Query(default=None, min_length=1, description="語/訳/メモの部分一致"),
    store: VocabularyStore = Depends(get_store),
) -> list[VocabularyEntryOut]:
    """List entries in id order with optional filters.

    - language / book_id はストア側で絞り込み
    - familiarity_score / q はスナップショットに対して適用
    """
    entries = store.list_entries(language=language, book_id=book_id)
    if familiarity_score is not None:
        entries = [e for e in entries if e.familiarity_score == familiarity_score]
    if q:
        entries = [e for e in entries if _matches_query(e, q)]
    return [VocabularyEntryOut.from_entry(e) for e in entries]


@router.get("/{entry_id}", response_model=VocabularyEntryOut)
async def get_vocabulary_entry(entry_id: int, store: VocabularyStore = Depends(get_store)) -> VocabularyEntryOut:
    try:
        return VocabularyEntryOut.from_entry(store.get(entry_id))
    except EntryNotFoundError as exc:
        raise HTTPException(status_code=404, detail=_NOT_FOUND) from exc


@router.post("/", response_model=VocabularyEntryOut, status_code=201, summary="語を保存")
async def create_vocabulary_entry(
    req: VocabularyCreateRequest, store: VocabularyStore = Depends(get_store)
) -> VocabularyEntryOut:
    entry = store.insert(**req.model_dump())
    logger.info("vocabulary_entry_created", entry_id=entry.id, language=entry.language)
    return VocabularyEntryOut.from_entry(entry)


@router.put("/{entry_id}", response_model=VocabularyEntryOut, summary="注釈を更新")
async def update_vocabulary_entry(
    entry_id: int,
    req: VocabularyUpdateRequest,
    store: VocabularyStore = Depends(get_store),
) -> VocabularyEntryOut:
    try:
        updated = store.update(entry_id, **req.model_dump(exclude_unset=True))
    except EntryNotFoundError as exc:
        raise HTTPException(status_code=404, detail=_NOT_FOUND) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return VocabularyEntryOut.from_entry(updated)


@router.delete("/{entry_id}", status_code=204, response_class=Response)
async def delete_vocabulary_entry(entry_id: int, store: VocabularyStore = Depends(get_store)) -> Response:
    try:
        store.delete(entry_id)
    except EntryNotFoundError as exc:
        raise HTTPException(status_code=404, detail=_NOT_FOUND) from exc
    logger.info("vocabulary_entry_deleted", entry_id=entry_id)
    return Response(status_code=204)
