from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from structlog import contextvars as structlog_contextvars

from . import __version__
from .config import Settings, settings
from .logging import configure_logging, logger
from .metrics import registry
from .middleware import RequestIDMiddleware
from .routers import health, review, vocabulary
from .store import VocabularyStore, create_store


class AccessLogAndMetricsMiddleware(BaseHTTPMiddleware):
    """Emit structured request logs and capture latency/metrics for each call.

    全リクエストに `request_id` を紐付け、構造化ログとメトリクスへ
    遅延・ステータス・エラー有無を記録する。
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:  # type: ignore[override]
        start = time.time()
        path = request.url.path
        method = request.method
        request_id = getattr(request.state, "request_id", None)
        if not request_id:
            request_id = uuid4().hex
            request.state.request_id = request_id
        structlog_contextvars.bind_contextvars(request_id=request_id)
        is_error = False
        status_code: int | None = None
        error_type: str | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            is_error = status_code >= 500
            return response
        except Exception as exc:
            is_error = True
            status_code = 500
            error_type = exc.__class__.__name__
            raise
        finally:
            latency_ms = (time.time() - start) * 1000
            # Key metrics by route template so per-id paths share one bucket.
            route = request.scope.get("route")
            metrics_path = getattr(route, "path", None) or "<unmatched>"
            registry.record(metrics_path, latency_ms, is_error=is_error)
            log_method = logger.error if is_error else logger.info
            log_method(
                "request_complete",
                request_id=request_id,
                path=path,
                method=method,
                latency_ms=round(latency_ms, 2),
                status_code=status_code,
                is_error=is_error,
                error_type=error_type,
                client_ip=request.client.host if request.client else "unknown",
            )
            structlog_contextvars.unbind_contextvars("request_id")


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies/params as 400 with the field errors."""
    return JSONResponse(
        status_code=400,
        content={"detail": "invalid request", "errors": jsonable_encoder(exc.errors())},
    )


def create_app(store: Optional[VocabularyStore] = None, app_settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    store を渡さない場合は設定（VOCAB_STORE_BACKEND）からストアを生成する。
    ストアは app.state に保持し、各ルータへは依存性注入で渡す。
    """
    cfg = app_settings or settings
    configure_logging(cfg.log_level)
    bound_store = store if store is not None else create_store(cfg)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        bound_store.close()

    app = FastAPI(title="Vocabulary Review API", version=__version__, lifespan=lifespan)
    app.state.store = bound_store
    app.state.settings = cfg

    configured_origins = list(cfg.allowed_cors_origins)
    # Credentials are only allowed together with an explicit origin list.
    allow_credentials = bool(configured_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins or ["*"],
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Starlette では後から追加したミドルウェアが外側で実行される。
    # RequestID で採番した id を AccessLog 側で参照する。
    app.add_middleware(AccessLogAndMetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]

    app.include_router(health.router)
    app.include_router(vocabulary.router, prefix="/api/vocabulary")
    app.include_router(review.router, prefix="/api/review")
    return app


app = create_app()
