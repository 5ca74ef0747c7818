from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_DB_PATH = ".data/vocabulary.sqlite3"
STORE_BACKENDS = frozenset({"memory", "sqlite"})
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数から読み込まれるアプリ設定クラス。
    - environment: 実行環境（development/staging/production など）
    - vocab_store_backend: 語彙エントリの保存先（memory / sqlite）
    - review_session_limit: 1 回の復習セッションで返す最大件数（0 は無制限）
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level / ログレベル",
    )
    host: str = Field(
        default="127.0.0.1",
        description="Bind address for `python -m vocabreview` / 待受アドレス",
    )
    port: int = Field(
        default=8000,
        description="Bind port for `python -m vocabreview` / 待受ポート",
    )
    # 未設定なら認証クッキー非許可のワイルドカードで動かす。
    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Comma separated CORS origins / CORS で許可するオリジンのカンマ区切り一覧",
        validation_alias=AliasChoices("allowed_cors_origins", "cors_allowed_origins"),
    )

    # --- 語彙ストア ---
    vocab_store_backend: str = Field(
        default="memory",
        description="Vocabulary store backend (memory|sqlite) / 語彙ストアの種類",
    )
    vocab_db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="Path to the vocabulary SQLite database / 語彙用SQLite DBパス",
    )

    # --- 復習セッション ---
    review_session_limit: int = Field(
        default=0,
        description="Max due items per review session, 0 for no limit / 1セッションの最大出題数",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("vocab_store_backend", mode="before")
    @classmethod
    def _normalise_store_backend(cls, value: object) -> str:
        """Lower-case and validate the backend name.

        未知の値で起動すると最初のリクエストまで失敗に気付けないため、
        設定読み込みの時点で拒否する。
        """

        backend = str(value or "").strip().lower() or "memory"
        if backend not in STORE_BACKENDS:
            raise ValueError(
                f"VOCAB_STORE_BACKEND must be one of {sorted(STORE_BACKENDS)}, got {value!r}",
            )
        return backend

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        level = str(value or "").strip().upper() or "INFO"
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}")
        return level

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _normalise_allowed_cors_origins(cls, raw_origins: object) -> tuple[str, ...] | object:
        """Split a comma separated value into a trimmed, deduplicated tuple.

        `.env` では空白や重複が混ざりやすいため、CORSMiddleware に渡す前に正規化する。
        """

        if raw_origins is None:
            candidates: list[str] = []
        elif isinstance(raw_origins, str):
            candidates = raw_origins.split(",")
        else:
            try:
                candidates = list(raw_origins)
            except TypeError:
                return raw_origins

        normalised: list[str] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            trimmed = candidate.strip()
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            normalised.append(trimmed)
        return tuple(normalised)

    @field_validator("review_session_limit", mode="after")
    @classmethod
    def _validate_session_limit(cls, value: int) -> int:
        if value < 0:
            raise ValueError("REVIEW_SESSION_LIMIT must be zero or positive")
        return value


settings = Settings()
