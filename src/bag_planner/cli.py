import argparse
import datetime as dt
import logging

from .ingest.loader import load_machines, load_orders
from .scheduling.catalog import DEFAULT_FLEET
from .scheduling.config import ScoringConfig
from .scheduling.pipeline import run_pipeline
from .export.report import export_excel
from .batches import save_run
from .db import init_db, session_scope


def main(argv=None):
    parser = argparse.ArgumentParser(description="Bag line planner CLI")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    run_p = sub.add_parser("run", help="Ingest orders -> greedy schedule -> Excel report")
    run_p.add_argument("--orders", required=True)
    run_p.add_argument("--machines", help="machine sheet; default: built-in fleet")
    run_p.add_argument("--start", help="run start, ISO datetime (default: today 06:00)")
    run_p.add_argument("--consolidate", action="store_true", help="merge orders sharing a SKU")
    run_p.add_argument("--out", default="out/schedule.xlsx")
    run_p.add_argument("--save", action="store_true", help="store the run in DATABASE_URL")

    sub.add_parser("machines", help="List the built-in machine fleet")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.cmd == "machines":
        for m in DEFAULT_FLEET:
            print(f"{m.machine_id}\t{m.category}\t{','.join(m.supported_handles)}\t"
                  f"{m.daily_capacity:g}/day\t{m.status}")
        return 0

    machines = load_machines(args.machines) if args.machines else DEFAULT_FLEET
    orders = load_orders(args.orders)
    print(f"Ingested: machines={len(machines)}, orders={len(orders)}")
    run_start = dt.datetime.fromisoformat(args.start) if args.start else None
    report = run_pipeline(orders, machines, run_start=run_start, cfg=ScoringConfig.from_env(),
                          consolidate=args.consolidate)
    res = report.result
    print(f"Scheduled: {len(res.entries)}, infeasible: {len(res.infeasible)}, rejected: {len(res.rejected)}")
    print(f"Load balance score: {res.load_balance_score:.1f}")
    print("Bottlenecks summary:", report.bottlenecks["summary"])
    out_xlsx, gantt_png = export_excel(report, args.out)
    print("Exported:", out_xlsx, "Gantt:", gantt_png)
    if args.save:
        init_db()
        with session_scope() as db:
            run = save_run(db, report)
            print("Saved run", run.id)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
