# Overview: UTC clock and timestamp (de)serialization for rows and query args.

from __future__ import annotations

from datetime import datetime, timezone

from .errors import ValidationError


def utcnow() -> datetime:
    """Naive UTC; every DateTime column stores this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime_arg(name: str, raw: str | None) -> datetime | None:
    """
    Parse an ISO-8601 filter bound (created_from / created_to).

    Blank means no bound. Offsets and a trailing Z are folded into naive UTC
    so the value compares directly against stored timestamps.
    """
    if raw is None or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: datetime | None) -> str | None:
    """Row timestamp as second-precision ISO-8601 with a trailing Z."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
