"""Shared fixtures: a valid environment and fresh process-wide state per test."""

import pytest

from exam_composer.config import get_settings
from exam_composer.middleware.rate_limit import get_limiter
from exam_composer.services import draft_store


@pytest.fixture(autouse=True)
def exam_service_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Point settings at a fake exam service and reset cached singletons."""
    monkeypatch.setenv("EXAM_SERVICE_URL", "http://exam-service.test/api")
    monkeypatch.delenv("FORM_VARIANT", raising=False)
    monkeypatch.delenv("EXAM_SERVICE_TOKEN", raising=False)
    monkeypatch.delenv("REQUEST_TIMEOUT_SECONDS", raising=False)
    get_settings.cache_clear()
    monkeypatch.setattr(draft_store, "_store", None)
    get_limiter().reset()
    yield
    get_settings.cache_clear()
