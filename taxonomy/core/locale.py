"""Active locale for the current request or task.

Held in a context variable so concurrent requests never see each other's
locale.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Literal

from taxonomy.config import settings

_current_locale: ContextVar[str | None] = ContextVar("taxonomy_locale", default=None)


def get_locale() -> str:
    """Locale in effect, falling back to ``settings.default_locale``."""
    return _current_locale.get() or settings.default_locale


def set_locale(locale: str | None) -> None:
    """Set the locale for the current context (``None`` resets to default)."""
    _current_locale.set(locale)


@contextmanager
def use_locale(locale: str | None) -> Iterator[str]:
    """Temporarily switch the active locale."""
    token = _current_locale.set(locale)
    try:
        yield get_locale()
    finally:
        _current_locale.reset(token)


def direction(locale: str | None = None) -> Literal["ltr", "rtl"]:
    """Text direction of ``locale`` (defaults to the active locale)."""
    language = (locale or get_locale()).split("-")[0].split("_")[0].lower()
    return "rtl" if language in settings.rtl_locales else "ltr"


def name_separator(locale: str | None = None) -> str:
    """Glyph joining ancestor names, pointing along the reading direction."""
    return settings.arrow_icon[direction(locale)]
