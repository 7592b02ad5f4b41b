# src/bag_planner/scheduling/timeline.py
"""Per-machine timeline (idle / setup / production) across one working day."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Iterable

import pandas as pd

from .catalog import MachineSpec, MachineState
from .config import DEFAULT_CONFIG, ScoringConfig
from .greedy_scheduler import ScheduleEntry

IDLE = "idle"
SETUP = "setup"
PRODUCTION = "production"

# display ordering only
EVENT_PRIORITY = {IDLE: "low", SETUP: "medium", PRODUCTION: "high"}


@dataclass(frozen=True)
class TimelineEvent:
    machine_id: str
    kind: str
    start: dt.datetime
    end: dt.datetime
    order_id: str | None = None
    quantity: float | None = None

    @property
    def priority(self) -> str:
        return EVENT_PRIORITY[self.kind]

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600.0


def _machine_id(m: MachineSpec | MachineState | str) -> str:
    if isinstance(m, str):
        return m
    return m.machine_id


def build_timeline(
    machines: Iterable[MachineSpec | MachineState | str],
    entries: Iterable[ScheduleEntry],
    work_date: dt.date | None = None,
    cfg: ScoringConfig = DEFAULT_CONFIG,
) -> list[TimelineEvent]:
    """Expand schedule entries into timeline events, globally sorted by start.

    ``work_date`` anchors the 06:00-22:00 window; it defaults to the date of
    the earliest entry. With neither entries nor a date there is no day to
    draw and the timeline is empty.
    """
    entries = list(entries)
    if work_date is None:
        if not entries:
            return []
        work_date = min(e.start for e in entries).date()
    day_start = dt.datetime.combine(work_date, cfg.day_start)
    day_end = dt.datetime.combine(work_date, cfg.day_end)

    events: list[TimelineEvent] = []
    for m in machines:
        mid = _machine_id(m)
        cursor = day_start
        for e in sorted((x for x in entries if x.machine_id == mid), key=lambda x: x.start):
            idle_end = min(e.start, day_end)
            if idle_end > cursor:
                events.append(TimelineEvent(mid, IDLE, cursor, idle_end))
            setup_end = e.start + dt.timedelta(hours=e.setup_hours)
            if setup_end > e.start:
                events.append(TimelineEvent(mid, SETUP, e.start, setup_end, e.order_id))
            events.append(TimelineEvent(mid, PRODUCTION, setup_end, e.end, e.order_id, e.quantity))
            cursor = max(cursor, e.end)
        if cursor < day_end:
            events.append(TimelineEvent(mid, IDLE, cursor, day_end))

    # stable: same-start events keep per-machine order
    return sorted(events, key=lambda ev: ev.start)


def timeline_frame(events: list[TimelineEvent]) -> pd.DataFrame:
    cols = ["machine_id", "kind", "start_ts", "end_ts", "hours", "order_id", "quantity", "priority"]
    if not events:
        return pd.DataFrame(columns=cols)
    return pd.DataFrame([
        {
            "machine_id": ev.machine_id,
            "kind": ev.kind,
            "start_ts": ev.start,
            "end_ts": ev.end,
            "hours": round(ev.hours, 3),
            "order_id": ev.order_id,
            "quantity": ev.quantity,
            "priority": ev.priority,
        }
        for ev in events
    ], columns=cols)
