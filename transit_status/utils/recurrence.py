# transit_status/utils/recurrence.py

# Expands stored incident definitions into concrete, non-recurring intervals.
# Recurring maintenance templates carry an RFC 5545 rule (parsed with dateutil);
# a rule on any other incident type is ignored.
# Every occurrence keeps the template's duration (end - start) verbatim.
# Open-ended definitions are never expanded: they yield a single [start, None) interval.

from __future__ import annotations
import logging
from datetime import datetime
from typing import Iterable, Iterator, List
from zoneinfo import ZoneInfo

from dateutil.rrule import rrulestr

from transit_status.config import operating_tz, settings
from transit_status.errors import InvalidInterval, InvalidRecurrenceRule
from transit_status.models import IncidentDefinition, IncidentType
from transit_status.utils.windows import ConcreteInterval

logger = logging.getLogger(__name__)

def _check_bounded(rule: str) -> None:
    """Every RRULE must carry COUNT or UNTIL; unbounded rules never terminate."""
    for raw in rule.strip().splitlines():
        name, _, value = raw.strip().rpartition(":")
        head = name.split(";")[0].upper()
        if head not in ("", "RRULE") or "FREQ=" not in value.upper():
            continue
        parts = [p.strip() for p in value.upper().split(";")]
        if not any(p.startswith(("COUNT=", "UNTIL=")) for p in parts):
            raise InvalidRecurrenceRule(rule, "rule has neither COUNT nor UNTIL")

def iter_occurrences(rule: str, dtstart: datetime, tz: ZoneInfo | None = None) -> Iterator[datetime]:
    """
    Occurrence start times of `rule`, lazily. A DTSTART inside the rule text wins
    over `dtstart`; naive occurrences are anchored in the operating timezone.
    """
    tz = tz or operating_tz()
    _check_bounded(rule)
    try:
        parsed = rrulestr(rule, dtstart=dtstart.astimezone(tz), forceset=True)
    except (ValueError, TypeError) as exc:
        raise InvalidRecurrenceRule(rule, str(exc)) from exc
    for occurrence in parsed:
        if occurrence.tzinfo is None:
            occurrence = occurrence.replace(tzinfo=tz)
        yield occurrence

def iter_intervals(definition: IncidentDefinition, max_occurrences: int | None = None) -> Iterator[ConcreteInterval]:
    if definition.end is None:
        yield ConcreteInterval(definition.id, definition.type, definition.start, None)
        return
    if definition.end < definition.start:
        raise InvalidInterval(definition.id, definition.start, definition.end)
    if not definition.rrule or definition.type is not IncidentType.maintenance:
        yield ConcreteInterval(definition.id, definition.type, definition.start, definition.end)
        return

    limit = max_occurrences if max_occurrences is not None else settings.MAX_RECURRENCE_OCCURRENCES
    duration = definition.template_duration
    for n, start in enumerate(iter_occurrences(definition.rrule, definition.start), 1):
        if n > limit:
            raise InvalidRecurrenceRule(definition.rrule, f"more than {limit} occurrences")
        yield ConcreteInterval(definition.id, definition.type, start, start + duration)

def expand(definition: IncidentDefinition, max_occurrences: int | None = None) -> List[ConcreteInterval]:
    intervals = list(iter_intervals(definition, max_occurrences))
    if definition.rrule and definition.end is not None and definition.type is IncidentType.maintenance:
        logger.debug("incident %s expanded to %d occurrences", definition.id, len(intervals))
    return intervals

def expand_all(definitions: Iterable[IncidentDefinition], max_occurrences: int | None = None) -> List[ConcreteInterval]:
    out: List[ConcreteInterval] = []
    for definition in definitions:
        out.extend(expand(definition, max_occurrences))
    return out
