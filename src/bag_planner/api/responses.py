from __future__ import annotations

from dataclasses import asdict

from ..scheduling.pipeline import PlanningReport
from ..schemas import ScheduleResponse


def report_to_response(report: PlanningReport, run_id: int | None = None) -> ScheduleResponse:
    res = report.result
    return ScheduleResponse(
        run_id=run_id,
        run_start=res.run_start,
        load_balance_score=round(res.load_balance_score, 4),
        total_orders=report.total_orders,
        entries=[e.as_dict() for e in res.entries],
        infeasible=[{"order_id": i.order_id, "reasons": {k: list(v) for k, v in i.reasons.items()}}
                    for i in res.infeasible],
        rejected=[asdict(r) for r in res.rejected],
        machines=[
            {
                "machine_id": m.machine_id,
                "scheduled_units": m.scheduled_units,
                "scheduled_hours": round(m.scheduled_hours, 4),
                "remaining_daily_capacity": m.remaining_daily_capacity,
                "utilization_pct": round(m.utilization * 100.0, 2),
                "next_available_time": m.next_available_time,
            }
            for m in res.machines
        ],
        timeline=[
            {
                "machine_id": ev.machine_id,
                "kind": ev.kind,
                "start_ts": ev.start,
                "end_ts": ev.end,
                "order_id": ev.order_id,
                "quantity": ev.quantity,
                "priority": ev.priority,
            }
            for ev in report.timeline
        ],
        bottlenecks=report.bottlenecks,
    )


