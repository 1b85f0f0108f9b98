"""Device name matching and ordering."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from btmanage.core.model import Device

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def find_by_name(devices: Iterable[Device], query: str, exact: bool) -> list[Device]:
    q = query.strip()
    if not q:
        return []
    if exact:
        return [d for d in devices if d.name == q]
    return [d for d in devices if d.name.startswith(q)]


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def sort_by_recent(devices: Iterable[Device]) -> list[Device]:
    """Most recently connected first; devices never connected last, by name."""
    items = list(devices)
    recent = [d for d in items if d.last_connected_at is not None]
    never = [d for d in items if d.last_connected_at is None]
    recent.sort(key=lambda d: _as_aware(d.last_connected_at or _OLDEST), reverse=True)
    never.sort(key=lambda d: d.name)
    return recent + never
