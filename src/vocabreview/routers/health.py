from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..metrics import registry

router = APIRouter(tags=["health"])


@router.get("/healthz")
def health_check() -> dict[str, str]:
    """Simple health check endpoint.

    ライブネス/レディネス確認用の簡易エンドポイント。
    """
    return {"status": "ok"}


@router.get("/metrics")
def metrics() -> JSONResponse:
    """Return in-memory metrics snapshot.

    パス別の p95/件数/エラー数と、スコア別の採点件数を返す。
    """
    return JSONResponse(content=registry.snapshot())
