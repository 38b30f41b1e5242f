"""Tests for LocalizationMiddleware and the locale dependencies."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.yalt.api.dependencies import (
    CurrentLocaleDep,
    LocaleContextDep,
    LocaleResolverDep,
    SettingsDep,
)
from src.yalt.api.middleware import HasLocalePreference, LocalizationMiddleware, user_preferred_locale
from tests.support.models import Article


class User:
    def __init__(self, locale):
        self.locale = locale

    def preferred_locale(self):
        return self.locale


class FakeAuthMiddleware:
    """Put a user on the ASGI scope like AuthenticationMiddleware does."""

    def __init__(self, app, user):
        self.app = app
        self.user = user

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http":
            scope["user"] = self.user
        await self.app(scope, receive, send)


def build_app(user=None, **middleware_options) -> FastAPI:
    app = FastAPI()
    app.add_middleware(LocalizationMiddleware, **middleware_options)
    if user is not None:
        app.add_middleware(FakeAuthMiddleware, user=user)

    @app.get("/locale")
    def read_locale(locale: CurrentLocaleDep, context: LocaleContextDep):
        return {"locale": locale, "resolved": context.is_resolved}

    @app.get("/articles/preview")
    def preview_article(locale: CurrentLocaleDep, resolver: LocaleResolverDep, settings: SettingsDep):
        article = Article.build({"slug": "hello", "title": {"en": "Hello", "fr": "Bonjour"}})
        return {
            "article": article.to_dict(locale=locale),
            "fallback": resolver.fallback_for(locale),
            "default": settings.locale,
        }

    return app


class TestLocalizationMiddleware:
    """Test locale resolution per request."""

    @pytest.fixture
    def client(self):
        return TestClient(build_app())

    def test_header_locale(self, client):
        response = client.get("/locale", headers={"Accept-Language": "fr"})

        assert response.status_code == 200
        assert response.json() == {"locale": "fr", "resolved": True}
        assert response.headers["content-language"] == "fr"

    def test_weighted_header(self, client):
        response = client.get("/locale", headers={"Accept-Language": "de;q=0.9, en-GB;q=0.8"})
        assert response.json()["locale"] == "en-GB"

    def test_invalid_header_falls_back_to_default(self, client):
        response = client.get("/locale", headers={"Accept-Language": "xx"})

        assert response.json()["locale"] == "en"
        assert response.headers["content-language"] == "en"

    def test_default_from_settings(self, configure):
        configure(locale="ru")
        client = TestClient(build_app())

        assert client.get("/locale").json()["locale"] == "ru"

    def test_default_from_middleware_option(self):
        client = TestClient(build_app(default_locale="fr"))
        assert client.get("/locale").headers["content-language"] == "fr"

    def test_user_preference(self):
        client = TestClient(build_app(user=User("ru")))
        assert client.get("/locale").json()["locale"] == "ru"

    def test_header_beats_user_preference(self):
        client = TestClient(build_app(user=User("ru")))
        response = client.get("/locale", headers={"Accept-Language": "fr"})
        assert response.json()["locale"] == "fr"

    def test_user_without_preference(self):
        client = TestClient(build_app(user=User(None)))
        assert client.get("/locale").json()["locale"] == "en"

    def test_localized_serialization(self, client):
        response = client.get("/articles/preview", headers={"Accept-Language": "fr"})

        assert response.json() == {
            "article": {"id": None, "slug": "hello", "published": None, "title": "Bonjour", "body": None},
            "fallback": None,
            "default": "en",
        }

    def test_region_request_reports_fallback(self, client):
        response = client.get("/articles/preview", headers={"Accept-Language": "en-US"})

        assert response.json()["fallback"] == "en"
        assert response.json()["article"]["title"] is None


class TestWithoutMiddleware:
    """Dependencies still work when the middleware is not installed."""

    def test_context_created_on_demand(self):
        app = FastAPI()

        @app.get("/locale")
        def read_locale(locale: CurrentLocaleDep):
            return {"locale": locale}

        response = TestClient(app).get("/locale", headers={"Accept-Language": "fr"})

        assert response.json() == {"locale": "en"}
        assert "content-language" not in response.headers


class TestUserPreference:
    """Test the HasLocalePreference protocol."""

    def test_protocol(self):
        assert isinstance(User("fr"), HasLocalePreference)
        assert not isinstance(object(), HasLocalePreference)

    def test_reads_scope_user(self):
        from starlette.requests import Request

        request = Request({"type": "http", "headers": [], "user": User("fr")})
        assert user_preferred_locale(request) == "fr"

    def test_no_user(self):
        from starlette.requests import Request

        assert user_preferred_locale(Request({"type": "http", "headers": []})) is None
