from __future__ import annotations

import logging
import math
from typing import Any, Iterable

import pandas as pd

from ..scheduling.catalog import MachineSpec, MachineState
from ..scheduling.config import DEFAULT_CONFIG, ScoringConfig
from ..scheduling.greedy_scheduler import ENTRY_COLUMNS, ScheduleEntry
from ..scheduling.utils import compute_machine_analytics

logger = logging.getLogger("bag_planner.bottlenecks")


def _empty_report(total_machines: int = 0) -> dict[str, Any]:
    return {
        "bottlenecks": [],
        "underutilized": [],
        "load_balancing_suggestions": [],
        "setup_optimizations": [],
        "summary": {
            "total_machines": total_machines,
            "average_utilization": 0.0,
            "bottleneck_count": 0,
            "underutilized_count": 0,
            "suggestion_count": 0,
            "optimization_potential": "Low",
        },
    }


def _machine_row(r) -> dict[str, Any]:
    return {
        "machine_id": r.machine_id,
        "machine_name": r.machine_name,
        "utilization_pct": round(float(r.utilization_pct), 1),
        "total_hours": round(float(r.total_hours), 2),
        "order_count": int(r.order_count),
    }


def analyze_bottlenecks(
    machines: Iterable[MachineSpec | MachineState] | None,
    entries: Iterable[ScheduleEntry] | None,
    cfg: ScoringConfig = DEFAULT_CONFIG,
) -> dict[str, Any]:
    """Flag over/under-loaded machines and propose balancing and setup batching.

    Never raises: missing or unusable input yields an empty report.
    """
    machines = list(machines or [])
    specs = {(m.spec if isinstance(m, MachineState) else m).machine_id:
             (m.spec if isinstance(m, MachineState) else m) for m in machines}
    entries = list(entries or [])
    if not specs:
        return _empty_report()

    df_ops = pd.DataFrame([e.as_dict() for e in entries], columns=ENTRY_COLUMNS)
    try:
        an = compute_machine_analytics(specs.values(), df_ops)
    except (ValueError, KeyError, TypeError):
        logger.exception("bottleneck analysis failed; returning empty report")
        return _empty_report(len(specs))

    hot = an[an["utilization_pct"] > cfg.bottleneck_pct]
    cold = an[an["utilization_pct"] < cfg.underutilized_pct].sort_values("utilization_pct", kind="stable")

    suggestions = []
    for b in hot.itertuples(index=False):
        b_handles = set(specs[b.machine_id].supported_handles)
        for u in cold.itertuples(index=False):
            shared = b_handles & set(specs[u.machine_id].supported_handles)
            if not shared:
                continue
            delta = float(b.utilization_pct - u.utilization_pct)
            suggestions.append({
                "from_machine": b.machine_id,
                "to_machine": u.machine_id,
                "from_utilization": round(float(b.utilization_pct), 1),
                "to_utilization": round(float(u.utilization_pct), 1),
                "utilization_delta": round(delta, 1),
                "shared_handles": sorted(shared),
                "message": (
                    f"Move work from {b.machine_id} ({b.utilization_pct:.1f}%) to "
                    f"{u.machine_id} ({u.utilization_pct:.1f}%), delta {delta:.1f} pts"
                ),
            })
            break

    setups = []
    for r in an[an["order_count"] > 1].itertuples(index=False):
        setup = specs[r.machine_id].setup_time_minutes
        n = int(r.order_count)
        current = n * setup
        batched = math.ceil(n / 2) * setup
        if current - batched <= 0:
            continue
        setups.append({
            "machine_id": r.machine_id,
            "order_count": n,
            "current_setup_minutes": current,
            "batched_setup_minutes": batched,
            "potential_savings_minutes": current - batched,
            "message": (
                f"Batch similar orders on {r.machine_id}: {n} setups ({current:g} min) "
                f"could drop to {math.ceil(n / 2)} ({batched:g} min)"
            ),
        })

    if suggestions:
        potential = "High"
    elif setups:
        potential = "Medium"
    else:
        potential = "Low"

    avg = float(an["utilization_pct"].mean()) if len(an) else 0.0
    if math.isnan(avg):
        avg = 0.0

    return {
        "bottlenecks": [_machine_row(r) for r in hot.itertuples(index=False)],
        "underutilized": [_machine_row(r) for r in cold.itertuples(index=False)],
        "load_balancing_suggestions": suggestions,
        "setup_optimizations": setups,
        "summary": {
            "total_machines": len(specs),
            "average_utilization": round(avg, 1),
            "bottleneck_count": int(len(hot)),
            "underutilized_count": int(len(cold)),
            "suggestion_count": len(suggestions) + len(setups),
            "optimization_potential": potential,
        },
    }
