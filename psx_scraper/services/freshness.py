from __future__ import annotations

from datetime import datetime, timezone

DEFAULT_MAX_AGE_MINUTES = 30


def _coerce(value: datetime | str | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def is_fresh(
    last_updated: datetime | str | None,
    max_age_minutes: float = DEFAULT_MAX_AGE_MINUTES,
    now: datetime | None = None,
) -> bool:
    """Return whether a stored quote stamped at ``last_updated`` can still be served.

    Future timestamps give a negative age and count as fresh.
    """
    stamp = _coerce(last_updated)
    if stamp is None:
        return False
    ref = _coerce(now) or datetime.now(timezone.utc)
    age_minutes = (ref - stamp).total_seconds() / 60
    return age_minutes < max_age_minutes
