"""
Typed failures raised by the availability engine.

Malformed input (bad recurrence rules, inverted intervals) aborts the
computation being built and reaches the caller as one of these.
NoServiceWindow is the exception: the aggregator absorbs it as a day with
zero service seconds.
"""
from __future__ import annotations

from datetime import date


class TransitStatusError(Exception):
    """Base class for engine errors."""


class InvalidRecurrenceRule(TransitStatusError, ValueError):
    def __init__(self, rule: str, reason: str):
        self.rule = rule
        self.reason = reason
        super().__init__(f"invalid recurrence rule {rule!r}: {reason}")


class InvalidInterval(TransitStatusError, ValueError):
    def __init__(self, incident_id: str, start, end):
        self.incident_id = incident_id
        self.start = start
        self.end = end
        super().__init__(f"incident {incident_id}: end {end} precedes start {start}")


class NoServiceWindow(TransitStatusError, LookupError):
    def __init__(self, line_id: str, day: date, started_on: date):
        self.line_id = line_id
        self.day = day
        self.started_on = started_on
        super().__init__(f"line {line_id} has no service on {day} (service starts {started_on})")
