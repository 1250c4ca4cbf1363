"""Settings parsing and log redaction."""
import logging

from usaccidents_insights.config import load_settings
from usaccidents_insights.logging_config import _db_password, _RedactFilter


def test_defaults(monkeypatch):
    for name in ("ACCIDENTS_CACHE_MAX_ENTRIES", "ACCIDENTS_QUERY_WORKERS", "ACCIDENTS_LIST_MAX_LIMIT",
                 "ACCIDENTS_CACHE_DEFAULT_TTL", "ACCIDENTS_CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.cache_max_entries == 1024
    assert settings.cache_default_ttl == 300.0
    assert settings.query_workers == 4
    assert settings.list_max_limit == 200
    assert settings.cors_origins == ["*"]


def test_overrides_and_junk(monkeypatch):
    monkeypatch.setenv("ACCIDENTS_QUERY_WORKERS", "8")
    monkeypatch.setenv("ACCIDENTS_LIST_MAX_LIMIT", "lots")
    monkeypatch.setenv("ACCIDENTS_CACHE_WARM_MINUTES", "-3")
    monkeypatch.setenv("ACCIDENTS_CORS_ORIGINS", "http://a.test, http://b.test ,")
    settings = load_settings()
    assert settings.query_workers == 8
    assert settings.list_max_limit == 200
    assert settings.cache_warm_minutes == 0
    assert settings.cors_origins == ["http://a.test", "http://b.test"]


def test_db_password():
    assert _db_password("mysql+pymysql://app:s3cret@db:3306/accidents") == "s3cret"
    assert _db_password("sqlite:///local.db") == ""
    assert _db_password(None) == ""


def test_redact_filter_masks_message_and_args():
    record = logging.LogRecord(
        "usaccidents", logging.ERROR, __file__, 1,
        "connect failed for s3cret: %s", ("url with s3cret",), None,
    )
    assert _RedactFilter("s3cret").filter(record) is True
    assert "s3cret" not in record.getMessage()
    assert record.getMessage() == "connect failed for ***: url with ***"
