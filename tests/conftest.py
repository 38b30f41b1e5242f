"""
Pytest configuration and shared fixtures.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from src.yalt.core.config import YaltSettings, use_settings
from tests.support.models import Base


@pytest.fixture(autouse=True)
def yalt_settings():
    """Registry of en (US, GB), fr and ru; no fallback by default."""
    settings = YaltSettings(
        locales={"en": ["US", "GB"], "fr": [], "ru": []},
        locale="en",
    )
    use_settings(settings)
    yield settings
    use_settings(None)


@pytest.fixture
def configure():
    """Install settings built from keyword overrides of the default test settings."""

    def _configure(**overrides) -> YaltSettings:
        data = {"locales": {"en": ["US", "GB"], "fr": [], "ru": []}, "locale": "en"}
        data.update(overrides)
        settings = YaltSettings(**data)
        use_settings(settings)
        return settings

    return _configure


@pytest.fixture
def session():
    """Sync session on an in-memory SQLite database."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as db_session:
        yield db_session
    engine.dispose()
