# -*- coding: utf-8 -*-
"""
Greedy single-pass scheduler for the bag converting line.

Orders are ranked, then each order in turn is matched against the machines'
current running state: compatibility filter -> score -> best machine, and the
chosen machine's state is advanced. Order N therefore depends on every
assignment made before it.
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd

from .catalog import DEFAULT_FLEET, MachineSpec, MachineState, clone_for_run
from .compatibility import Incompatible, check_compatibility
from .config import DEFAULT_CONFIG, ScoringConfig
from .orders import Order, RejectedOrder, validate_orders
from .priority import prioritize
from .scoring import select_best

logger = logging.getLogger("bag_planner.scheduler")

BUDGET_EXHAUSTED = "assignment budget exhausted"

ENTRY_COLUMNS = [
    "order_id", "machine_id", "quantity", "start_ts", "end_ts",
    "setup_hours", "production_hours", "total_hours", "priority",
]


@dataclass(frozen=True)
class ScheduleEntry:
    order_id: str
    machine_id: str
    quantity: float
    start: dt.datetime
    end: dt.datetime
    setup_hours: float
    production_hours: float
    total_hours: float
    priority: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "machine_id": self.machine_id,
            "quantity": self.quantity,
            "start_ts": self.start,
            "end_ts": self.end,
            "setup_hours": self.setup_hours,
            "production_hours": self.production_hours,
            "total_hours": self.total_hours,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class InfeasibleOrder:
    order_id: str
    reasons: dict[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass
class ScheduleResult:
    entries: list[ScheduleEntry]
    load_balance_score: float
    machines: list[MachineState]
    infeasible: list[InfeasibleOrder] = field(default_factory=list)
    rejected: list[RejectedOrder] = field(default_factory=list)
    run_start: dt.datetime | None = None

    @property
    def scheduled_order_ids(self) -> list[str]:
        return [e.order_id for e in self.entries]

    def entries_for(self, machine_id: str) -> list[ScheduleEntry]:
        return sorted((e for e in self.entries if e.machine_id == machine_id), key=lambda e: e.start)

    def to_frame(self) -> pd.DataFrame:
        if not self.entries:
            return pd.DataFrame(columns=ENTRY_COLUMNS)
        return pd.DataFrame([e.as_dict() for e in self.entries], columns=ENTRY_COLUMNS)


def default_run_start(today: dt.date | None = None, cfg: ScoringConfig = DEFAULT_CONFIG) -> dt.datetime:
    return dt.datetime.combine(today or dt.date.today(), cfg.day_start)


def production_hours(spec: MachineSpec, qty: float) -> tuple[float, float, float]:
    """(setup, efficiency-adjusted production, total) hours for qty units on a machine."""
    setup = spec.setup_time_minutes / 60.0
    adjusted = (qty / spec.hourly_capacity) / spec.efficiency
    return setup, adjusted, setup + adjusted


def load_balance_score(machines: Iterable[MachineState], cfg: ScoringConfig = DEFAULT_CONFIG) -> float:
    """100 for a perfectly even fleet, decreasing with utilization variance."""
    utils = np.array([m.utilization for m in machines], dtype=float)
    if utils.size == 0:
        return 0.0
    variance = float(np.mean((utils - utils.mean()) ** 2))
    return max(0.0, 100.0 - variance * cfg.balance_variance_factor)


def schedule(
    machines: Iterable[MachineSpec] | None = DEFAULT_FLEET,
    orders: Iterable[Mapping[str, Any] | Order] | None = (),
    run_start: dt.datetime | None = None,
    cfg: ScoringConfig | None = None,
    max_assignments: int | None = None,
) -> ScheduleResult:
    """Assign orders to machines greedily.

    Malformed orders are returned in ``rejected``; orders no machine can take
    in ``infeasible``. Neither aborts the run. ``max_assignments`` caps the
    number of orders considered; the rest are reported as infeasible.
    """
    if machines is None:
        raise TypeError("machines must not be None")
    if orders is None:
        raise TypeError("orders must not be None")
    cfg = cfg or DEFAULT_CONFIG
    run_start = run_start or default_run_start(cfg=cfg)

    fleet = clone_for_run(machines, run_start)
    valid, rejected = validate_orders(list(orders))
    ranked = prioritize(valid, cfg)

    entries: list[ScheduleEntry] = []
    infeasible: list[InfeasibleOrder] = []

    for n, r in enumerate(ranked):
        order = r.order
        if max_assignments is not None and n >= max_assignments:
            infeasible.append(InfeasibleOrder(order.order_id, {"*": (BUDGET_EXHAUSTED,)}))
            continue

        reasons: dict[str, tuple[str, ...]] = {}
        candidates: list[MachineState] = []
        for m in fleet:
            res = check_compatibility(m, order)
            if isinstance(res, Incompatible):
                reasons[m.machine_id] = res.reasons
            else:
                candidates.append(m)

        if not candidates:
            logger.warning("order %s: no compatible machine (%d checked)", order.order_id, len(fleet))
            infeasible.append(InfeasibleOrder(order.order_id, reasons))
            continue

        best, score = select_best(candidates, order, cfg)
        qty = order.base_quantity
        setup_h, prod_h, total_h = production_hours(best.spec, qty)
        start = best.next_available_time
        end = start + dt.timedelta(hours=total_h)
        entries.append(ScheduleEntry(
            order_id=order.order_id,
            machine_id=best.machine_id,
            quantity=qty,
            start=start,
            end=end,
            setup_hours=setup_h,
            production_hours=prod_h,
            total_hours=total_h,
            priority=r.priority,
        ))
        best.assign(qty, total_h, end)
        logger.debug(
            "order %s -> %s score=%.2f qty=%g %s..%s",
            order.order_id, best.machine_id, score, qty, start.isoformat(), end.isoformat(),
        )

    lb = load_balance_score(fleet, cfg) if entries else 0.0
    logger.info(
        "greedy run: orders=%d scheduled=%d infeasible=%d rejected=%d load_balance=%.1f",
        len(valid) + len(rejected), len(entries), len(infeasible), len(rejected), lb,
    )
    return ScheduleResult(
        entries=entries,
        load_balance_score=lb,
        machines=fleet,
        infeasible=infeasible,
        rejected=rejected,
        run_start=run_start,
    )
