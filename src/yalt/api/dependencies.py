"""
Type aliases for FastAPI dependency injection.

Routes receive the request's LocaleContext explicitly instead of reading a
process-wide locale.
"""

from typing import Annotated

from fastapi import Depends, Request

from src.yalt.core.config import YaltSettings, get_settings
from src.yalt.core.context import LocaleContext
from src.yalt.core.locales import LocaleResolver, get_locale_resolver


def get_locale_context(request: Request) -> LocaleContext:
    """Get the request's LocaleContext, creating an unset one without the middleware."""
    context = getattr(request.state, "locale_context", None)
    if context is None:
        context = LocaleContext()
        request.state.locale_context = context
    return context


def get_current_locale(context: Annotated[LocaleContext, Depends(get_locale_context)]) -> str:
    return context.current()


SettingsDep = Annotated[YaltSettings, Depends(get_settings)]

LocaleResolverDep = Annotated[LocaleResolver, Depends(get_locale_resolver)]

LocaleContextDep = Annotated[LocaleContext, Depends(get_locale_context)]

# The resolved locale string for the current request
CurrentLocaleDep = Annotated[str, Depends(get_current_locale)]

__all__ = [
    "get_locale_context",
    "get_current_locale",
    "SettingsDep",
    "LocaleResolverDep",
    "LocaleContextDep",
    "CurrentLocaleDep",
]
