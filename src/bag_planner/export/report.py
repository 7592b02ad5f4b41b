from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
from openpyxl import Workbook
from openpyxl.chart import BarChart, Reference
from openpyxl.utils import get_column_letter

from ..scheduling.pipeline import PlanningReport
from ..scheduling.timeline import PRODUCTION, SETUP, timeline_frame

_COLORS = {SETUP: "#f0ad4e", PRODUCTION: "#2e7d32"}


def _auto_width(ws):
    for col in ws.columns:
        max_len = max((len(str(c.value)) for c in col if c.value is not None), default=0)
        ws.column_dimensions[get_column_letter(col[0].column)].width = min(60, max(12, max_len + 2))


def _write_frame(wb: Workbook, title: str, df: pd.DataFrame, first: bool = False):
    if first:
        ws = wb.active
        ws.title = title
    else:
        ws = wb.create_sheet(title)
    ws.append([str(c) for c in df.columns])
    for row in df.itertuples(index=False):
        ws.append([None if (isinstance(v, float) and v != v) or v is pd.NaT else v for v in row])
    _auto_width(ws)
    return ws


def render_gantt(report: PlanningReport, out_png: str | Path) -> Path | None:
    """Per-machine Gantt of setup/production blocks, hours from run start."""
    events = [ev for ev in report.timeline if ev.kind in _COLORS]
    if not events:
        return None
    machine_ids = [m.machine_id for m in report.result.machines]
    base = report.result.run_start or min(ev.start for ev in events)
    fig, ax = plt.subplots(figsize=(12, 1 + 0.5 * len(machine_ids)))
    for i, mid in enumerate(machine_ids):
        for ev in (e for e in events if e.machine_id == mid):
            start_h = (ev.start - base).total_seconds() / 3600.0
            ax.broken_barh([(start_h, ev.hours)], (i - 0.4, 0.8), facecolors=_COLORS[ev.kind])
    ax.set_yticks(range(len(machine_ids)))
    ax.set_yticklabels(machine_ids)
    ax.set_xlabel("Hours from run start")
    ax.set_title("Machine schedule")
    plt.tight_layout()
    out_png = Path(out_png)
    fig.savefig(out_png, dpi=120)
    plt.close(fig)
    return out_png


def export_excel(report: PlanningReport, out_path: str | Path) -> tuple[Path, Path | None]:
    """Write the schedule report workbook; returns (xlsx, gantt png or None)."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    res = report.result

    wb = Workbook()
    _write_frame(wb, "schedule", res.to_frame(), first=True)
    _write_frame(wb, "timeline", timeline_frame(report.timeline))

    an = report.analytics.copy()
    ws_m = _write_frame(wb, "machines", an)
    if len(an):
        util_col = list(an.columns).index("utilization_pct") + 1
        chart = BarChart()
        chart.type = "col"
        chart.title = "Utilization (%)"
        chart.y_axis.title = "%"
        data_ref = Reference(ws_m, min_col=util_col, min_row=1, max_row=1 + len(an))
        cats_ref = Reference(ws_m, min_col=1, min_row=2, max_row=1 + len(an))
        chart.add_data(data_ref, titles_from_data=True)
        chart.set_categories(cats_ref)
        chart.height = 10
        chart.width = 20
        ws_m.add_chart(chart, f"B{len(an) + 4}")

    b = report.bottlenecks
    rows = []
    for kind in ("bottlenecks", "underutilized"):
        for r in b.get(kind, []):
            rows.append({"kind": kind, "machine_id": r["machine_id"], "detail": f"{r['utilization_pct']}%"})
    for s in b.get("load_balancing_suggestions", []):
        rows.append({"kind": "load_balancing", "machine_id": s["from_machine"], "detail": s["message"]})
    for s in b.get("setup_optimizations", []):
        rows.append({"kind": "setup_batching", "machine_id": s["machine_id"], "detail": s["message"]})
    for k, v in b.get("summary", {}).items():
        rows.append({"kind": "summary", "machine_id": k, "detail": v})
    _write_frame(wb, "bottlenecks", pd.DataFrame(rows, columns=["kind", "machine_id", "detail"]))

    issues = [
        {"order_id": i.order_id, "status": "infeasible",
         "reason": "; ".join(f"{m}: {', '.join(r)}" for m, r in i.reasons.items())}
        for i in res.infeasible
    ] + [
        {"order_id": r.order_id, "status": "rejected", "reason": r.reason}
        for r in res.rejected
    ]
    _write_frame(wb, "infeasible", pd.DataFrame(issues, columns=["order_id", "status", "reason"]))

    if report.materials is not None:
        mat_rows = []
        for m in report.materials:
            for s in m["shortages"] or [{}]:
                mat_rows.append({
                    "order_id": m["order_id"],
                    "feasible": m["feasible"],
                    "material_id": s.get("material_id"),
                    "required": s.get("required"),
                    "available": s.get("available"),
                    "unit": s.get("unit"),
                })
        cols = ["order_id", "feasible", "material_id", "required", "available", "unit"]
        _write_frame(wb, "materials", pd.DataFrame(mat_rows, columns=cols))

    ws_kpi = wb.create_sheet("KPI")
    ws_kpi.append(["orders in", report.total_orders])
    ws_kpi.append(["scheduled", len(res.entries)])
    ws_kpi.append(["infeasible", len(res.infeasible)])
    ws_kpi.append(["rejected", len(res.rejected)])
    ws_kpi.append(["load balance score", round(res.load_balance_score, 2)])
    _auto_width(ws_kpi)

    wb.save(out_path)
    gantt_png = render_gantt(report, out_path.with_name(out_path.stem + "_gantt.png"))
    return out_path, gantt_png
