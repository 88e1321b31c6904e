"""Injectable time source."""
from __future__ import annotations

from datetime import datetime

from flask import current_app

from .models import ensure_aware, utc_now


def current_time(now: datetime | None = None) -> datetime:
    """Return ``now`` if given, else the configured ``CLOCK``."""
    if now is not None:
        return ensure_aware(now)
    clock = current_app.config.get("CLOCK") or utc_now
    return ensure_aware(clock())
