from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta
from typing import Any

NO_DATA = "-"

_HHMM_RE = re.compile(r"\d{2}:\d{2}")
_ANCHOR_DAY = date(2000, 1, 1)


def _interval(start: str, end: str) -> tuple[datetime, datetime] | None:
    """Same-day instants for two HH:MM strings, or None if either is unusable.

    An end earlier than the start belongs to the following day (a shift that
    crosses midnight).
    """
    if not start or not end:
        return None
    if not _HHMM_RE.fullmatch(start) or not _HHMM_RE.fullmatch(end):
        return None
    try:
        start_at = datetime.combine(_ANCHOR_DAY, time(int(start[:2]), int(start[3:])))
        end_at = datetime.combine(_ANCHOR_DAY, time(int(end[:2]), int(end[3:])))
    except ValueError:
        return None
    if end_at < start_at:
        end_at += timedelta(days=1)
    return start_at, end_at


def format_atencion(start: str, end: str) -> str:
    """Render an attention window as ``"09:00-09:45 (45min)"``.

    Anything that is not a pair of valid ``HH:MM`` values falls back to the
    non-empty parts joined with ``-`` and no duration.
    """
    span = _interval(start, end)
    if span is None:
        return "-".join(part for part in (start, end) if part)
    minutes = round((span[1] - span[0]).total_seconds() / 60)
    return f"{start}-{end} ({minutes}min)"


def _attention_times(record: Any) -> tuple[str, str]:
    if isinstance(record, Mapping):
        return record.get("inicioAtencion") or "", record.get("finAtencion") or ""
    return record.inicio_atencion, record.fin_atencion


def calculate_consultation_hours(records: Iterable[Any]) -> str:
    """Earliest start to latest end across all records, e.g. ``"8h 30min"``.

    Records without a valid start/end pair are skipped. Returns ``"-"`` both
    when nothing is usable and when the span is zero minutes long.
    """
    intervals = []
    for record in records or ():
        span = _interval(*_attention_times(record))
        if span is not None:
            intervals.append(span)

    if not intervals:
        return NO_DATA

    earliest = min(start for start, _ in intervals)
    latest = max(end for _, end in intervals)
    total_minutes = int((latest - earliest).total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)

    if hours == 0 and minutes == 0:
        return NO_DATA
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}min"
