"""
Locale registry and resolution.

The registry flattens the configured language/region groups into the set of
valid locale codes. The resolver derives fallbacks and picks the locale for an
inbound request.

Examples:
    >>> registry = LocaleRegistry({"en": ["US", "GB"], "fr": []})
    >>> sorted(registry.get_locales())
    ['en', 'en-GB', 'en-US', 'fr']
    >>> resolver = LocaleResolver(registry, fallback_locale="en")
    >>> resolver.fallback_for("en-US")
    'en'
    >>> resolver.fallback_for("fr")
    'en'
"""

from collections.abc import Mapping, Sequence
from functools import cached_property, lru_cache
from typing import Any

from src.yalt.core.config import YaltSettings, get_settings
from src.yalt.core.logging_setup import get_logger

logger = get_logger("locales")


class LocaleRegistry:
    """Valid locale codes built from a language -> region variants map."""

    def __init__(self, locales: Mapping[str, Sequence[str] | None], separator: str = "-"):
        self._groups = {language: tuple(variants or ()) for language, variants in locales.items()}
        self.separator = separator

    @classmethod
    def from_settings(cls, settings: YaltSettings) -> "LocaleRegistry":
        return cls(settings.locales, settings.locale_separator)

    @cached_property
    def _locales(self) -> frozenset[str]:
        locales = set()
        for language, variants in self._groups.items():
            locales.add(language)
            for region in variants:
                locales.add(f"{language}{self.separator}{region}")
        return frozenset(locales)

    def get_locales(self) -> frozenset[str]:
        """Return every valid locale code."""
        return self._locales

    def is_valid_locale(self, locale: Any) -> bool:
        """Check registry membership. Never raises."""
        return isinstance(locale, str) and locale in self._locales

    def __contains__(self, locale: Any) -> bool:
        return self.is_valid_locale(locale)

    def __repr__(self) -> str:
        return f"LocaleRegistry({sorted(self._locales)!r})"


@lru_cache(maxsize=1)
def get_locale_registry() -> LocaleRegistry:
    """Get the registry for the current settings (computed once)."""
    return LocaleRegistry.from_settings(get_settings())


class LocaleResolver:
    """Derives fallback locales and resolves request locales."""

    def __init__(
        self,
        registry: LocaleRegistry,
        fallback_locale: str | None = None,
        use_fallback: bool = False,
    ):
        self.registry = registry
        self.fallback_locale = fallback_locale
        self.use_fallback = use_fallback

    @classmethod
    def from_settings(cls, settings: YaltSettings | None = None) -> "LocaleResolver":
        if settings is None:
            settings = get_settings()
            registry = get_locale_registry()
        else:
            registry = LocaleRegistry.from_settings(settings)
        return cls(
            registry,
            fallback_locale=settings.fallback_locale,
            use_fallback=settings.use_fallback,
        )

    @property
    def separator(self) -> str:
        return self.registry.separator

    def is_locale_country_based(self, locale: str) -> bool:
        return self.separator in locale

    def language_from_locale(self, locale: str) -> str:
        return locale.split(self.separator, 1)[0]

    def fallback_for(self, locale: str | None) -> str | None:
        """
        Get the fallback locale for a locale.

        Region-qualified codes fall back to their language part; everything
        else falls back to the configured global fallback (possibly None).
        """
        if locale and self.is_locale_country_based(locale):
            language = self.language_from_locale(locale)
            if language:
                return language
        return self.fallback_locale

    def with_locale_fallback(self, use_fallback: bool | None = None) -> bool:
        """Resolve an optional fallback flag against the configured default."""
        if use_fallback is None:
            return self.use_fallback
        return use_fallback

    def locale_from_header(self, header_value: str | None) -> str | None:
        """
        Pick the best registered locale from an Accept-Language header.

        Tags are ordered by their q weight (ties keep header order) and the
        first valid one wins. Wildcards and q=0 tags are ignored.
        """
        if not header_value:
            return None

        candidates: list[tuple[float, int, str]] = []
        for index, part in enumerate(header_value.split(",")):
            tag, _, params = part.strip().partition(";")
            tag = tag.strip().replace("_", self.separator)
            if not tag or tag == "*":
                continue

            weight = 1.0
            for param in params.split(";"):
                name, _, value = param.strip().partition("=")
                if name.strip() == "q":
                    try:
                        weight = float(value)
                    except ValueError:
                        weight = 0.0
            if weight <= 0:
                continue
            candidates.append((-weight, index, tag))

        for _, _, tag in sorted(candidates):
            if self.registry.is_valid_locale(tag):
                return tag
        return None

    def resolve_request_locale(
        self,
        header_value: str | None,
        user_preference: str | None = None,
        default_locale: str | None = None,
    ) -> str | None:
        """
        Resolve the locale for a request.

        Precedence: valid header locale, then the user's stored preference,
        then the default. The last two are trusted and not validated.
        """
        locale = self.locale_from_header(header_value)
        if locale is not None:
            logger.debug(f"Locale from header: {locale}")
            return locale
        if user_preference:
            logger.debug(f"Locale from user preference: {user_preference}")
            return user_preference
        return default_locale


def get_locale_resolver() -> LocaleResolver:
    """Get a resolver bound to the current settings."""
    return LocaleResolver.from_settings()
