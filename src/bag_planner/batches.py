from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db.models import OrderBatch, ScheduleEntryRow, ScheduleRun
from .scheduling.catalog import DEFAULT_FLEET, machine_from_record
from .scheduling.greedy_scheduler import InfeasibleOrder, ScheduleEntry
from .scheduling.orders import RejectedOrder
from .scheduling.pipeline import PlanningReport, report_from_entries

logger = logging.getLogger("bag_planner.batches")


def _jsonable(v: Any) -> Any:
    if isinstance(v, datetime):
        return v.isoformat()
    if isinstance(v, float) and v != v:
        return None
    if isinstance(v, dict):
        return {str(k): _jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    return v


def create_batch(db: Session, file_name: str, rows: list[dict[str, Any]], rejected: int = 0) -> OrderBatch:
    batch = OrderBatch(
        file_name=file_name,
        total_orders=len(rows),
        rejected_orders=rejected,
        orders=_jsonable(rows),
    )
    db.add(batch)
    db.commit()
    db.refresh(batch)
    logger.info("stored batch %s (%s, %d orders)", batch.id, file_name, len(rows))
    return batch


def list_batches(db: Session) -> list[OrderBatch]:
    return list(db.execute(select(OrderBatch).order_by(OrderBatch.uploaded_at.desc(), OrderBatch.id.desc())).scalars())


def get_batch(db: Session, batch_id: int) -> OrderBatch | None:
    return db.get(OrderBatch, batch_id)


def delete_batch(db: Session, batch_id: int) -> bool:
    batch = db.get(OrderBatch, batch_id)
    if batch is None:
        return False
    db.delete(batch)
    db.commit()
    return True


def save_run(db: Session, report: PlanningReport, batch_id: int | None = None) -> ScheduleRun:
    res = report.result
    run = ScheduleRun(
        batch_id=batch_id,
        run_start=res.run_start,
        total_orders=report.total_orders,
        feasible=len(res.entries),
        load_balance_score=float(res.load_balance_score),
        report=_jsonable({
            "infeasible": [{"order_id": i.order_id, "reasons": i.reasons} for i in res.infeasible],
            "rejected": [{"index": r.index, "order_id": r.order_id, "reason": r.reason} for r in res.rejected],
            "bottlenecks": report.bottlenecks,
            "machines": [asdict(m.spec) for m in res.machines],
        }),
    )
    for e in res.entries:
        run.entries.append(ScheduleEntryRow(
            order_id=e.order_id,
            machine_id=e.machine_id,
            quantity=e.quantity,
            start_ts=e.start,
            end_ts=e.end,
            setup_hours=e.setup_hours,
            production_hours=e.production_hours,
            total_hours=e.total_hours,
            priority=e.priority,
        ))
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def get_run(db: Session, run_id: int) -> ScheduleRun | None:
    return db.get(ScheduleRun, run_id)


def run_entries(run: ScheduleRun) -> list[ScheduleEntry]:
    """Rebuild scheduler entries from stored rows, ordered by start."""
    rows = sorted(run.entries, key=lambda r: (r.start_ts, r.machine_id))
    return [
        ScheduleEntry(
            order_id=r.order_id,
            machine_id=r.machine_id,
            quantity=r.quantity,
            start=r.start_ts,
            end=r.end_ts,
            setup_hours=r.setup_hours,
            production_hours=r.production_hours,
            total_hours=r.total_hours,
            priority=r.priority,
        )
        for r in rows
    ]


def run_report(run: ScheduleRun) -> PlanningReport:
    """Rebuild the full planning report of a stored run."""
    stored = run.report or {}
    machines = [machine_from_record(m) for m in stored.get("machines", [])] or list(DEFAULT_FLEET)
    infeasible = [
        InfeasibleOrder(i["order_id"], {k: tuple(v) for k, v in (i.get("reasons") or {}).items()})
        for i in stored.get("infeasible", [])
    ]
    rejected = [RejectedOrder(r["index"], r["order_id"], r["reason"]) for r in stored.get("rejected", [])]
    return report_from_entries(run_entries(run), machines, run.run_start, infeasible, rejected)
