from fastapi import Depends, Request

from .flows.review import ReviewFlow
from .store import VocabularyStore


def get_store(request: Request) -> VocabularyStore:
    """Return the store bound to the running application by ``create_app``."""
    return request.app.state.store


def get_review_flow(store: VocabularyStore = Depends(get_store)) -> ReviewFlow:
    return ReviewFlow(store)
