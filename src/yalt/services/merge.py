"""
Translation merge engine.

Pure functions that split write payloads into per-locale translations and
merge translation records back into localized views. They work on any list
of records exposing the locale and the translatable fields as attributes, so
the ORM layer and plain objects share them.
"""

from collections.abc import Callable, Mapping, MutableMapping, Sequence
from typing import Any, TypeVar

from src.yalt.core.exceptions import TranslationShapeError, UnsupportedLocaleError
from src.yalt.core.locales import LocaleRegistry, LocaleResolver

R = TypeVar("R")


def translatable_from(attributes: Mapping[str, Any], translatable: Sequence[str]) -> dict[str, Any]:
    """Get the translatable subset of an attribute map."""
    return {key: value for key, value in attributes.items() if key in translatable}


def extract_translations(
    input_fields: MutableMapping[str, Any],
    translatable: Sequence[str],
    registry: LocaleRegistry,
) -> dict[str, dict[str, Any]]:
    """
    Pull translatable keys out of a write payload.

    Each translatable value must be a ``{locale: value}`` mapping. The whole
    payload is validated before anything is removed from ``input_fields``, so
    a bad locale or shape rejects it all and leaves the input untouched.

    Args:
        input_fields: Flat field -> value map. Translatable keys are removed.
        translatable: Names of the translatable fields.
        registry: Registry used to validate locale keys.

    Returns:
        ``{locale: {field: value}}``

    Raises:
        TranslationShapeError: A translatable value is not a mapping.
        UnsupportedLocaleError: A locale key is not registered.
    """
    keys = [key for key in input_fields if key in translatable]
    translations: dict[str, dict[str, Any]] = {}

    for key in keys:
        value = input_fields[key]
        if not isinstance(value, Mapping):
            raise TranslationShapeError(key, value)

        for locale, localized in value.items():
            if not registry.is_valid_locale(locale):
                raise UnsupportedLocaleError(locale)
            translations.setdefault(locale, {})[key] = localized

    for key in keys:
        del input_fields[key]

    return translations


def translation_for(translations: Sequence[R], locale: str, locale_key: str = "locale") -> R | None:
    """Find the record for a locale (locales are unique per owner)."""
    for translation in translations:
        if getattr(translation, locale_key, None) == locale:
            return translation
    return None


def get_or_create_translation(
    translations: list[R],
    locale: str,
    factory: Callable[[str], R],
    locale_key: str = "locale",
) -> R:
    """Return the record for a locale, creating and registering it if missing."""
    translation = translation_for(translations, locale, locale_key)
    if translation is None:
        translation = factory(locale)
        translations.append(translation)
    return translation


def record_values(record: Any, translatable: Sequence[str]) -> dict[str, Any]:
    """Project a record onto the translatable fields it carries."""
    return {field: getattr(record, field) for field in translatable if hasattr(record, field)}


def is_empty(record: Any, translatable: Sequence[str]) -> bool:
    """Check whether every translatable value on a record is null."""
    return all(getattr(record, field, None) is None for field in translatable)


def effective_values(
    translations: Sequence[Any],
    locale: str,
    translatable: Sequence[str],
    use_fallback: bool,
    resolver: LocaleResolver,
    locale_key: str = "locale",
) -> dict[str, Any]:
    """
    Get the translated values in effect for a locale.

    Falls back to ``resolver.fallback_for(locale)`` when there is no record
    for the locale and ``use_fallback`` is set. No record means ``{}``.
    """
    record = translation_for(translations, locale, locale_key)

    if record is None and use_fallback:
        fallback = resolver.fallback_for(locale)
        if fallback and fallback != locale:
            record = translation_for(translations, fallback, locale_key)

    if record is None:
        return {}
    return record_values(record, translatable)


def all_localized_values(
    translations: Sequence[Any],
    translatable: Sequence[str],
    locale_key: str = "locale",
) -> dict[str, dict[str, Any]]:
    """
    Collect every non-null translated value as ``{field: {locale: value}}``.

    Every translatable field gets a key, even when no locale has a value.
    """
    localized: dict[str, dict[str, Any]] = {field: {} for field in translatable}

    for translation in translations:
        locale = getattr(translation, locale_key, None)
        for field in translatable:
            value = getattr(translation, field, None)
            if value is not None:
                localized[field][locale] = value

    return localized
