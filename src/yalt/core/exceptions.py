"""Errors raised while filling translatable models."""

from typing import Any


class YaltError(RuntimeError):
    """Base class for Yalt errors."""


class UnsupportedLocaleError(YaltError):
    """A translation payload used a locale missing from the registry."""

    def __init__(self, locale: Any):
        self.locale = locale
        super().__init__(f"Locale '{locale}' is not supported")


class TranslationShapeError(YaltError):
    """A translatable field was given something other than a locale mapping."""

    def __init__(self, key: str, value: Any):
        self.key = key
        self.value = value
        super().__init__(f"Translation '{key}' must be a mapping. {value!r} given")
