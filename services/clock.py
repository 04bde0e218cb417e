"""Injectable notion of "now" used for default query windows."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from settings import get_settings

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current instant as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def fixed_clock(instant: datetime) -> Clock:
    """A clock pinned to ``instant``."""

    def _now() -> datetime:
        return instant

    return _now


def build_default_clock() -> Clock:
    settings = get_settings()
    if settings.fixed_now is not None:
        return fixed_clock(settings.fixed_now)
    return system_clock
