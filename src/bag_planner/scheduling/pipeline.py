# src/bag_planner/scheduling/pipeline.py
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import pandas as pd

from ..analysis.bottlenecks import analyze_bottlenecks
from ..analysis.materials import BomCalculator, InventoryService, check_materials
from .catalog import DEFAULT_FLEET, MachineSpec, clone_for_run
from .config import DEFAULT_CONFIG, ScoringConfig
from .greedy_scheduler import (
    InfeasibleOrder,
    ScheduleEntry,
    ScheduleResult,
    load_balance_score,
    schedule,
)
from .orders import Order, RejectedOrder, consolidate_by_sku, validate_orders
from .priority import prioritize
from .timeline import TimelineEvent, build_timeline
from .utils import compute_machine_analytics

logger = logging.getLogger("bag_planner.pipeline")


@dataclass
class PlanningReport:
    result: ScheduleResult
    timeline: list[TimelineEvent]
    analytics: pd.DataFrame
    bottlenecks: dict[str, Any]
    # per-order material check, only when BOM and inventory were supplied
    materials: list[dict[str, Any]] | None = None

    @property
    def total_orders(self) -> int:
        return len(self.result.entries) + len(self.result.infeasible) + len(self.result.rejected)


def run_pipeline(
    orders: Iterable[Mapping[str, Any] | Order],
    machines: Iterable[MachineSpec] = DEFAULT_FLEET,
    run_start: dt.datetime | None = None,
    cfg: ScoringConfig | None = None,
    consolidate: bool = False,
    max_assignments: int | None = None,
    bom: BomCalculator | None = None,
    inventory: InventoryService | None = None,
) -> PlanningReport:
    """Schedule -> timeline -> analytics -> bottlenecks in one call.

    With both ``bom`` and ``inventory`` given, the report also carries a
    material check of the valid orders in the order the scheduler ranks them.
    """
    machines = list(machines)
    orders = list(orders)
    rejected = []
    if consolidate:
        valid, rejected = validate_orders(orders)
        orders = consolidate_by_sku(valid)
        logger.info("consolidated %d orders into %d", len(valid), len(orders))

    res = schedule(machines, orders, run_start=run_start, cfg=cfg, max_assignments=max_assignments)
    if rejected:
        res.rejected = rejected + res.rejected

    kw = {"cfg": cfg} if cfg else {}
    timeline = build_timeline(res.machines, res.entries, work_date=res.run_start.date(), **kw)
    analytics = compute_machine_analytics(res.machines, res.to_frame())
    report = analyze_bottlenecks(res.machines, res.entries, **kw)

    materials = None
    if bom is not None and inventory is not None:
        valid, _ = validate_orders(orders)
        ranked = prioritize(valid, cfg or DEFAULT_CONFIG)
        materials = check_materials([r.order for r in ranked], bom, inventory)
        short = sum(1 for m in materials if not m["feasible"])
        if short:
            logger.warning("material shortages for %d of %d orders", short, len(materials))
    return PlanningReport(result=res, timeline=timeline, analytics=analytics, bottlenecks=report,
                          materials=materials)


def report_from_entries(
    entries: list[ScheduleEntry],
    machines: Iterable[MachineSpec],
    run_start: dt.datetime,
    infeasible: list[InfeasibleOrder] | None = None,
    rejected: list[RejectedOrder] | None = None,
    cfg: ScoringConfig | None = None,
) -> PlanningReport:
    """Rebuild a report from stored entries by replaying them onto fresh machine state."""
    fleet = clone_for_run(machines, run_start)
    by_id = {m.machine_id: m for m in fleet}
    for e in sorted(entries, key=lambda x: (x.start, x.machine_id)):
        m = by_id.get(e.machine_id)
        if m is None:
            logger.warning("stored entry for unknown machine %s ignored", e.machine_id)
            continue
        m.assign(e.quantity, e.total_hours, e.end)

    kw = {"cfg": cfg} if cfg else {}
    res = ScheduleResult(
        entries=list(entries),
        load_balance_score=load_balance_score(fleet, **kw) if entries else 0.0,
        machines=fleet,
        infeasible=list(infeasible or []),
        rejected=list(rejected or []),
        run_start=run_start,
    )
    timeline = build_timeline(fleet, res.entries, work_date=run_start.date(), **kw)
    analytics = compute_machine_analytics(fleet, res.to_frame())
    return PlanningReport(res, timeline, analytics, analyze_bottlenecks(fleet, res.entries, **kw))
