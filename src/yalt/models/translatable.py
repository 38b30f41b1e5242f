"""
Translatable SQLAlchemy models.

An owning model mixes in ``Translatable`` and lists its localized fields in
``__translatable__``. ``make_translation_model`` then generates the companion
``<Owner>Translation`` model (one row per owner and locale) and wires the
owner's ``translations`` relationship.

Examples:
    >>> class Article(Translatable, Base):
    ...     __tablename__ = "articles"
    ...     __translatable__ = ("title", "body")
    ...     id: Mapped[int] = mapped_column(primary_key=True)
    ...     slug: Mapped[str] = mapped_column(String(64))
    >>> ArticleTranslation = make_translation_model(Article)
    >>> article = Article.build({"slug": "hi", "title": {"en": "Hi", "fr": "Salut"}})
    >>> article.get_translated("title", "fr")
    'Salut'
"""

import re
from collections.abc import Mapping
from typing import Any, ClassVar

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, event
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session, mapped_column, object_session, relationship
from sqlalchemy.types import TypeEngine

from src.yalt.core.config import get_settings
from src.yalt.core.logging_setup import get_logger
from src.yalt.core.locales import get_locale_registry, get_locale_resolver
from src.yalt.services.merge import (
    all_localized_values,
    effective_values,
    extract_translations,
    get_or_create_translation,
    is_empty,
    record_values,
    translatable_from,
    translation_for,
)

logger = get_logger("models")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    """'BlogPost' -> 'blog_post'."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class TranslationMixin:
    """Behaviour shared by generated translation models."""

    __translatable__: ClassVar[tuple[str, ...]] = ()
    __owner_foreign_key__: ClassVar[str] = ""
    __locale_key__: ClassVar[str] = "locale"

    def __init__(self, **values: Any):
        for key, value in values.items():
            setattr(self, key, value)

    @property
    def locale_code(self) -> str:
        return getattr(self, self.__locale_key__)

    def is_empty(self) -> bool:
        return is_empty(self, self.__translatable__)

    def to_dict(self) -> dict[str, Any]:
        """Locale plus translated values. The surrogate id is hidden."""
        data = {self.__locale_key__: self.locale_code}
        data.update(record_values(self, self.__translatable__))
        return data

    def __repr__(self) -> str:
        owner_id = getattr(self, self.__owner_foreign_key__, None)
        return f"{type(self).__name__}({self.__owner_foreign_key__}={owner_id!r}, locale={self.locale_code!r})"


class Translatable:
    """Mixin for models whose fields are translated per locale."""

    __translatable__: ClassVar[tuple[str, ...]] = ()
    __locale_key__: ClassVar[str | None] = None
    __use_translation_fallback__: ClassVar[bool | None] = None
    __translation_model__: ClassVar[type | None] = None

    # ==================== Class-level metadata ====================

    @classmethod
    def get_translatable(cls) -> tuple[str, ...]:
        return tuple(cls.__translatable__ or ())

    @classmethod
    def is_translatable(cls, key: str) -> bool:
        return key in cls.get_translatable()

    @classmethod
    def get_locale_key(cls) -> str:
        # Fixed once the translation table exists.
        if cls.__translation_model__ is not None:
            return cls.__translation_model__.__locale_key__
        return cls.__locale_key__ or get_settings().locale_key

    @classmethod
    def translation_model(cls) -> type:
        if cls.__translation_model__ is None:
            raise RuntimeError(
                f"{cls.__name__} has no translation model. Call make_translation_model() first."
            )
        return cls.__translation_model__

    @classmethod
    def build(cls, attributes: Mapping[str, Any]):
        """Create a new instance filled from a (possibly multi-locale) payload."""
        instance = cls()
        instance.fill(attributes)
        return instance

    # ==================== Locale defaults ====================

    def with_translation_fallback(self) -> bool:
        if self.__use_translation_fallback__ is not None:
            return self.__use_translation_fallback__
        return get_locale_resolver().with_locale_fallback()

    def get_default_locale(self) -> str:
        return getattr(self, "_default_locale", None) or get_settings().locale

    def set_default_locale(self, locale: str) -> str:
        self._default_locale = locale
        return locale

    # ==================== Translation records ====================

    def new_translation(self, **values: Any):
        return self.translation_model()(**values)

    def translation_for(self, locale: str):
        return translation_for(self.translations, locale, self.get_locale_key())

    def translation_to(self, locale: str):
        """
        Get the record for a locale, registering a new one if missing.

        A saved record pruned since the last flush is put back instead, and
        its pending delete is cancelled.
        """
        locale_key = self.get_locale_key()
        if translation_for(self.translations, locale, locale_key) is None:
            self._restore_pruned_translation(locale)
        return get_or_create_translation(
            self.translations,
            locale,
            lambda code: self.new_translation(**{locale_key: code}),
            locale_key,
        )

    def translations_loaded(self) -> bool:
        return "translations" not in sa_inspect(self).unloaded

    def _prune_translation(self, translation) -> None:
        """Drop a record that no longer holds any value."""
        if translation in self.translations:
            self.translations.remove(translation)

        state = sa_inspect(translation)
        if state.persistent:
            session = object_session(translation)
            if session is not None:
                session.delete(translation)
            pruned = getattr(self, "_pruned_translations", None)
            if pruned is None:
                pruned = self._pruned_translations = {}
            pruned[translation.locale_code] = translation

        logger.debug(f"Pruned empty translation {translation!r}")

    def _restore_pruned_translation(self, locale: str) -> None:
        pruned = getattr(self, "_pruned_translations", None) or {}
        translation = pruned.pop(locale, None)
        # Once the delete is flushed the row is gone and a new record is needed.
        if translation is None or not sa_inspect(translation).persistent:
            return

        session = object_session(translation)
        if session is not None:
            session.add(translation)
        self.translations.append(translation)
        logger.debug(f"Restored pruned translation {translation!r}")

    # ==================== Writes ====================

    def fill(self, attributes: Mapping[str, Any]):
        """
        Assign a payload where translatable fields are ``{locale: value}`` maps.

        Translated values go to the per-locale records; a record left with no
        values is pruned. Remaining keys are set on the model itself.

        Raises:
            TranslationShapeError: A translatable value is not a mapping.
            UnsupportedLocaleError: A locale key is not registered.
        """
        attributes = dict(attributes)
        translatable = self.get_translatable()

        if translatable_from(attributes, translatable):
            translations = extract_translations(attributes, translatable, get_locale_registry())
            for locale, values in translations.items():
                translation = self.translation_to(locale)
                for field, value in values.items():
                    setattr(translation, field, value)

                if is_empty(translation, translatable):
                    self._prune_translation(translation)

        descriptors = sa_inspect(type(self)).all_orm_descriptors
        for key, value in attributes.items():
            if key in descriptors and key != "translations":
                setattr(self, key, value)
            else:
                logger.debug(f"Ignoring unknown attribute {type(self).__name__}.{key}")

        return self

    def save_translations(self, session: Session) -> None:
        """Upsert every registered record and prune the empty ones."""
        if not self.translations_loaded():
            return

        translatable = self.get_translatable()
        for translation in list(self.translations):
            if is_empty(translation, translatable):
                self._prune_translation(translation)
            else:
                session.add(translation)

    # ==================== Reads ====================

    def translated(self, locale: str | None = None, use_fallback: bool | None = None) -> dict[str, Any]:
        """Get the translated values in effect for a locale."""
        if use_fallback is None:
            use_fallback = self.with_translation_fallback()
        return effective_values(
            self.translations,
            locale or self.get_default_locale(),
            self.get_translatable(),
            use_fallback,
            get_locale_resolver(),
            self.get_locale_key(),
        )

    def get_translated(self, field: str, locale: str | None = None, use_fallback: bool | None = None) -> Any:
        if not self.is_translatable(field):
            raise AttributeError(f"{type(self).__name__}.{field} is not translatable")
        return self.translated(locale, use_fallback).get(field)

    def translated_attributes(self) -> dict[str, dict[str, Any]]:
        """Get every translated value as ``{field: {locale: value}}``."""
        return all_localized_values(self.translations, self.get_translatable(), self.get_locale_key())

    def to_dict(self, locale: str | None = None, with_translations: bool | None = None) -> dict[str, Any]:
        """
        Serialize the model.

        With ``locale`` the single-locale view is merged in. Otherwise every
        locale is included when translations are loaded, when
        ``loads_translations`` is configured, or when asked explicitly.
        """
        data = {attr.key: getattr(self, attr.key) for attr in sa_inspect(type(self)).column_attrs}

        if locale is not None:
            data.update({field: None for field in self.get_translatable()})
            data.update(self.translated(locale))
            return data

        if with_translations is None:
            with_translations = self.translations_loaded() or get_settings().loads_translations

        if with_translations:
            data.update(self.translated_attributes())

        return data


def make_translation_model(
    owner: type,
    column_types: Mapping[str, TypeEngine | type[TypeEngine]] | None = None,
) -> type:
    """
    Generate the translation model for a translatable owner.

    Creates ``<Owner>Translation`` on table ``<owner table>_<suffix>`` with a
    cascading foreign key, a locale column unique per owner, and one nullable
    column per translatable field (``Text`` unless overridden), then adds the
    owner's ``translations`` relationship.
    """
    column_types = dict(column_types or {})
    settings = get_settings()
    mapper = sa_inspect(owner)
    owner_table = mapper.local_table
    primary_key = mapper.primary_key[0]

    locale_key = owner.get_locale_key()
    foreign_key = f"{snake_case(owner.__name__)}_id"
    translatable = owner.get_translatable()

    attrs: dict[str, Any] = {
        "__tablename__": f"{owner_table.name}_{settings.translation_suffix}",
        "__table_args__": (UniqueConstraint(foreign_key, locale_key),),
        "__translatable__": translatable,
        "__owner_foreign_key__": foreign_key,
        "__locale_key__": locale_key,
        "id": mapped_column(Integer, primary_key=True),
        foreign_key: mapped_column(
            ForeignKey(f"{owner_table.name}.{primary_key.name}", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        locale_key: mapped_column(String(16), nullable=False, index=True),
    }
    for field in translatable:
        attrs[field] = mapped_column(column_types.get(field, Text), nullable=True)

    translation_model = mapper.registry.mapped(
        type(f"{owner.__name__}Translation", (TranslationMixin,), attrs)
    )

    mapper.add_property(
        "translations",
        relationship(
            translation_model,
            cascade="all, delete-orphan",
            lazy="selectin",
            order_by=translation_model.id,
        ),
    )
    owner.__translation_model__ = translation_model

    logger.debug(
        f"Translation model {translation_model.__name__} on {translation_model.__tablename__}"
    )
    return translation_model


@event.listens_for(Session, "before_flush")
def _save_translations_before_flush(session: Session, flush_context, instances) -> None:
    for instance in list(session.new) + list(session.dirty):
        if isinstance(instance, Translatable):
            instance.save_translations(session)

    # Records emptied by direct assignment leave their owner clean.
    emptied = [
        instance
        for instance in session.dirty
        if isinstance(instance, TranslationMixin)
        and instance.is_empty()
        and instance not in session.deleted
    ]
    if not emptied:
        return

    for owner in list(session.identity_map.values()):
        if isinstance(owner, Translatable) and owner.translations_loaded():
            for translation in list(owner.translations):
                if any(translation is instance for instance in emptied):
                    owner._prune_translation(translation)

    for instance in emptied:
        if instance not in session.deleted:
            session.delete(instance)
            logger.debug(f"Pruned empty translation {instance!r}")
