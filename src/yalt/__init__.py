"""
Yalt: per-locale model fields for SQLAlchemy and FastAPI.

Translatable models keep localized values in a companion translations table
(one row per owner and locale); LocalizationMiddleware picks the locale for
each request.
"""

__version__ = "0.1.0"
