# src/bag_planner/scheduling/utils.py
from __future__ import annotations

from typing import Iterable

import pandas as pd

from .catalog import MachineSpec, MachineState

ANALYTICS_COLUMNS = [
    "machine_id", "machine_name", "order_count", "total_units", "total_hours",
    "utilization_pct", "remaining_capacity", "completion_ts", "production_cost",
]


def _spec(m: MachineSpec | MachineState) -> MachineSpec:
    return m.spec if isinstance(m, MachineState) else m


def compute_machine_analytics(
    machines: Iterable[MachineSpec | MachineState],
    df_ops: pd.DataFrame | None,
) -> pd.DataFrame:
    """
    Per-machine totals from a schedule frame (columns: machine_id, quantity,
    start_ts, end_ts, total_hours).
    Returns one row per machine, including machines without work.
    """
    specs = [_spec(m) for m in machines]
    if not specs:
        return pd.DataFrame(columns=ANALYTICS_COLUMNS)

    if df_ops is None or df_ops.empty:
        df_ops = pd.DataFrame(columns=["machine_id", "quantity", "end_ts", "total_hours"])
    else:
        req_cols = {"machine_id", "quantity", "end_ts", "total_hours"}
        missing = req_cols - set(df_ops.columns)
        if missing:
            raise ValueError(f"compute_machine_analytics: missing columns: {sorted(missing)}")

    g = df_ops.groupby("machine_id").agg(
        order_count=("quantity", "size"),
        total_units=("quantity", "sum"),
        total_hours=("total_hours", "sum"),
        completion_ts=("end_ts", "max"),
    )

    records = []
    for s in specs:
        if s.machine_id in g.index:
            row = g.loc[s.machine_id]
            n = int(row["order_count"])
            units = float(row["total_units"])
            hours = float(row["total_hours"])
            done = row["completion_ts"]
        else:
            n, units, hours, done = 0, 0.0, 0.0, pd.NaT
        cost = hours * (s.operator_cost_per_hour + s.energy_cost_per_hour)
        if n:
            cost += s.maintenance_cost_per_day
        records.append({
            "machine_id": s.machine_id,
            "machine_name": s.name,
            "order_count": n,
            "total_units": units,
            "total_hours": hours,
            "utilization_pct": hours / s.working_hours_per_day * 100.0,
            "remaining_capacity": max(0.0, s.daily_capacity - units),
            "completion_ts": done,
            "production_cost": round(cost, 2),
        })
    return pd.DataFrame(records, columns=ANALYTICS_COLUMNS)
