"""Per-request locale context."""

from src.yalt.core.config import get_settings


class LocaleContext:
    """
    The locale in effect for one request.

    Starts unset; the first read or an explicit set resolves it, and it stays
    resolved for the life of the object. A new request gets a new context.

    Examples:
        >>> context = LocaleContext(default_locale="en")
        >>> context.is_resolved
        False
        >>> context.current()
        'en'
        >>> context.set_current("fr")
        >>> context.current()
        'fr'
    """

    def __init__(self, default_locale: str | None = None, locale: str | None = None):
        self.default_locale = default_locale
        self._locale = locale

    @property
    def is_resolved(self) -> bool:
        return self._locale is not None

    def current(self) -> str:
        """Get the locale in effect, resolving the default on first read."""
        if self._locale is None:
            self._locale = self.default_locale or get_settings().locale
        return self._locale

    def set_current(self, locale: str) -> None:
        self._locale = locale

    def __repr__(self) -> str:
        return f"LocaleContext(locale={self._locale!r}, default={self.default_locale!r})"
