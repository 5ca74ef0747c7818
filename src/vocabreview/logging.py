"""Structured logging setup.

構造化ログ（JSON 1 行 1 イベント）の初期化をまとめる。
"""

import logging

import structlog
from structlog import contextvars as structlog_contextvars

from .config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for application-wide logging.

    標準 logging を初期化し、structlog で ISO タイムスタンプ・ログレベル付きの
    JSON 形式出力を有効化する。stdlib 側の "INFO:logger:" といったプレフィックスは
    付けず、メッセージのみを出力する。
    """
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog_contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


logger = structlog.get_logger()
