# app/services/duration_accountant.py
"""
Converts a raw stay [start, end) into recognized minutes.

Steps when a zone rule is present:
  1. clip the stay to the zone's session window on the reference date
  2. raw duration = whole minutes of the clipped stay
  3. recognized = whole minutes of the clipped stay minus its exact overlap with the
     breaks (breaks are merged first, so overlapping breaks are never deducted twice)
  4. deduction = raw - recognized, so the two always add up to the raw duration

Without a zone rule the stay is credited unclipped ("raw" policy) or not at all
("zero" policy). Pure: no I/O, no clock reads. Rule objects are duck-typed
(start_time, end_time, breaks[].start_time/end_time) so ORM rows and API
schemas both work.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from app.utils.logger import get_logger

logger = get_logger(__name__)

POLICY_RAW = "raw"
POLICY_ZERO = "zero"


@dataclass(frozen=True)
class Recognition:
    raw_duration_minutes: int
    deduction_minutes: int
    recognized_minutes: int


ZERO = Recognition(0, 0, 0)


def _whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def _merged_breaks(breaks: Iterable, reference_date: date) -> List[Tuple[datetime, datetime]]:
    spans = sorted(
        (datetime.combine(reference_date, b.start_time), datetime.combine(reference_date, b.end_time))
        for b in breaks or ()
    )
    merged: List[Tuple[datetime, datetime]] = []
    for start, end in spans:
        if end <= start:
            continue
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def breakdown(raw_start: datetime, raw_end: datetime, zone_rule=None,
              reference_date: Optional[date] = None,
              missing_rule_policy: str = POLICY_RAW) -> Recognition:
    """Full accounting for one stay. See module docstring."""
    if raw_end < raw_start:
        logger.warning(f"[Accountant] Clock anomaly: end {raw_end} before start {raw_start} — credited 0")
        return ZERO

    if zone_rule is None:
        if missing_rule_policy == POLICY_ZERO:
            return ZERO
        minutes = max(0, _whole_minutes(raw_end - raw_start))
        return Recognition(minutes, 0, minutes)

    ref = reference_date or raw_start.date()
    session_start = datetime.combine(ref, zone_rule.start_time)
    session_end = datetime.combine(ref, zone_rule.end_time)

    clipped_start = max(raw_start, session_start)
    clipped_end = min(raw_end, session_end)
    if clipped_end <= clipped_start:
        return ZERO

    stay = clipped_end - clipped_start
    raw_minutes = _whole_minutes(stay)

    on_break = timedelta(0)
    for break_start, break_end in _merged_breaks(zone_rule.breaks, ref):
        overlap = min(clipped_end, break_end) - max(clipped_start, break_start)
        if overlap > timedelta(0):
            on_break += overlap

    # Floor once, after subtracting exact break time; deduction is whatever the floor removed.
    recognized = max(0, _whole_minutes(stay - min(on_break, stay)))
    return Recognition(raw_minutes, raw_minutes - recognized, recognized)


def recognize(raw_start: datetime, raw_end: datetime, zone_rule=None,
              reference_date: Optional[date] = None,
              missing_rule_policy: str = POLICY_RAW) -> int:
    return breakdown(raw_start, raw_end, zone_rule, reference_date, missing_rule_policy).recognized_minutes
