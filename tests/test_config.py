import pytest

from vocabreview.config import DEFAULT_DB_PATH, Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch):
    for name in ("VOCAB_STORE_BACKEND", "VOCAB_DB_PATH", "REVIEW_SESSION_LIMIT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.vocab_store_backend == "memory"
    assert settings.vocab_db_path == DEFAULT_DB_PATH
    assert settings.review_session_limit == 0
    assert settings.log_level == "INFO"


def test_reads_environment_case_insensitively(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("VOCAB_STORE_BACKEND", " SQLite ")
    monkeypatch.setenv("vocab_db_path", "/tmp/vocab.sqlite3")
    monkeypatch.setenv("REVIEW_SESSION_LIMIT", "20")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.vocab_store_backend == "sqlite"
    assert settings.vocab_db_path == "/tmp/vocab.sqlite3"
    assert settings.review_session_limit == 20
    assert settings.log_level == "DEBUG"


def test_rejects_unknown_store_backend():
    with pytest.raises(ValueError, match="VOCAB_STORE_BACKEND must be one of"):
        Settings(_env_file=None, vocab_store_backend="postgres")


def test_rejects_negative_session_limit():
    with pytest.raises(ValueError, match="REVIEW_SESSION_LIMIT must be zero or positive"):
        Settings(_env_file=None, review_session_limit=-1)


def test_rejects_unknown_log_level():
    with pytest.raises(ValueError, match="LOG_LEVEL must be one of"):
        Settings(_env_file=None, log_level="chatty")


def test_cors_origins_default_to_empty(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("ALLOWED_CORS_ORIGINS", raising=False)
    monkeypatch.delenv("CORS_ALLOWED_ORIGINS", raising=False)
    assert Settings(_env_file=None).allowed_cors_origins == ()


def test_cors_origins_are_split_trimmed_and_deduplicated(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ALLOWED_CORS_ORIGINS", "https://a.example, https://b.example,,https://a.example ")

    settings = Settings(_env_file=None)

    assert settings.allowed_cors_origins == ("https://a.example", "https://b.example")


def test_cors_origins_accept_alternate_env_name(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("ALLOWED_CORS_ORIGINS", raising=False)
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://reader.example")
    assert Settings(_env_file=None).allowed_cors_origins == ("https://reader.example",)
