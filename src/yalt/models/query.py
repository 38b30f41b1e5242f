"""Query helpers that join an owner's translation table."""

from collections.abc import Mapping
from typing import Any

from sqlalchemy import Select, and_
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import aliased

from src.yalt.core.config import get_settings
from src.yalt.services.merge import translatable_from

ORDER_COLUMN_PREFIX = "_order_by_translated_"


def _owner_join_condition(owner: type, translation: Any):
    primary_key = sa_inspect(owner).primary_key[0]
    foreign_key = getattr(translation, owner.translation_model().__owner_foreign_key__)
    return foreign_key == primary_key


def join_translations(stmt: Select, owner: type, locale: str | None = None) -> Select:
    """
    Outer join the owner's translation table.

    With ``locale`` the join is restricted to that locale, so each owner row
    pairs with at most one translation row.
    """
    translation = owner.translation_model()
    onclause = _owner_join_condition(owner, translation)
    if locale is not None:
        onclause = and_(onclause, getattr(translation, owner.get_locale_key()) == locale)
    return stmt.outerjoin(translation, onclause)


def order_by_translated(stmt: Select, owner: type, orders: Mapping[str, Mapping[str, str]]) -> Select:
    """
    Order by one or more translated columns.

    Each ordered field is also selected as ``_order_by_translated_<field>``;
    ``session.scalars()`` still yields the owners.

    Args:
        stmt: Select over ``owner``.
        owner: Translatable model class.
        orders: ``{field: {"lang": "en", "direction": "asc"}}``. Fields that
            are not translatable are ignored. ``lang`` defaults to the
            configured locale.

    Raises:
        ValueError: A direction other than asc/desc.
    """
    translation = owner.translation_model()
    locale_key = owner.get_locale_key()

    for field, rules in translatable_from(orders, owner.get_translatable()).items():
        direction = str(rules.get("direction", "asc")).lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Invalid order direction for {field}: {direction!r}")

        alias = aliased(translation, name=f"{translation.__tablename__}_{field}")
        onclause = and_(
            _owner_join_condition(owner, alias),
            getattr(alias, locale_key) == (rules.get("lang") or get_settings().locale),
        )
        column = getattr(alias, field).label(f"{ORDER_COLUMN_PREFIX}{field}")
        stmt = (
            stmt.outerjoin(alias, onclause)
            .add_columns(column)
            .order_by(column.desc() if direction == "desc" else column.asc())
        )

    return stmt
