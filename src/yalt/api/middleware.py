"""HTTP middleware that resolves the locale for each request."""

from typing import Protocol, runtime_checkable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from src.yalt.core.config import get_settings
from src.yalt.core.context import LocaleContext
from src.yalt.core.locales import LocaleResolver, get_locale_resolver
from src.yalt.core.logging_setup import configure_logging, get_logger

logger = get_logger("middleware")


@runtime_checkable
class HasLocalePreference(Protocol):
    """A user that stores its preferred locale."""

    def preferred_locale(self) -> str | None: ...


def user_preferred_locale(request: Request) -> str | None:
    """Get the authenticated user's stored locale, if any."""
    user = request.scope.get("user")
    if user is not None and isinstance(user, HasLocalePreference):
        return user.preferred_locale()
    return None


class LocalizationMiddleware(BaseHTTPMiddleware):
    """
    Resolve the request locale and stamp it on the response.

    Precedence: a registered locale from Accept-Language, then the
    authenticated user's preference, then the default locale. The result is
    stored as a LocaleContext on ``request.state.locale_context`` and echoed
    in the Content-Language header.
    """

    def __init__(self, app, resolver: LocaleResolver | None = None, default_locale: str | None = None):
        super().__init__(app)
        self._resolver = resolver
        self._default_locale = default_locale
        configure_logging()

    @property
    def resolver(self) -> LocaleResolver:
        return self._resolver or get_locale_resolver()

    async def dispatch(self, request, call_next):
        default_locale = self._default_locale or get_settings().locale
        locale = self.resolver.resolve_request_locale(
            request.headers.get("accept-language"),
            user_preferred_locale(request),
            default_locale,
        )

        context = LocaleContext(default_locale=default_locale)
        if locale:
            context.set_current(locale)
        request.state.locale_context = context

        logger.debug(f"{request.method} {request.url.path} -> locale {locale}")

        response = await call_next(request)

        if locale:
            response.headers["Content-Language"] = locale

        return response
