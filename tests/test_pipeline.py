import datetime as dt

import pytest
from conftest import RUN_START, bags, make_machine

from bag_planner.scheduling.config import ScoringConfig
from bag_planner.scheduling.pipeline import report_from_entries, run_pipeline
from bag_planner.scheduling.timeline import IDLE


def _machines():
    return [make_machine("M1"), make_machine("M2")]


def test_pipeline_builds_every_view():
    rep = run_pipeline([bags("A", 400), bags("B", 400, sku="X")], _machines(), run_start=RUN_START)
    assert rep.total_orders == 2
    assert len(rep.result.entries) == 2
    assert list(rep.analytics["machine_id"]) == ["M1", "M2"]
    assert rep.analytics["order_count"].sum() == 2
    assert rep.timeline[0].start == dt.datetime.combine(RUN_START.date(), dt.time(6, 0))
    assert rep.timeline[0].kind == IDLE
    assert rep.bottlenecks["summary"]["total_machines"] == 2


def test_consolidation_merges_before_scheduling():
    orders = [bags("A", 300, sku="X"), bags("B", 300, sku="X"), {"order_id": "bad", "quantity": 0}]
    rep = run_pipeline(orders, _machines(), run_start=RUN_START, consolidate=True)
    assert [e.quantity for e in rep.result.entries] == [600]
    assert [r.order_id for r in rep.result.rejected] == ["bad"]


def test_replayed_report_matches_original():
    rep = run_pipeline([bags(f"O{i}", 300) for i in range(5)], _machines(), run_start=RUN_START)
    again = report_from_entries(rep.result.entries, _machines(), RUN_START)
    assert again.result.load_balance_score == pytest.approx(rep.result.load_balance_score)
    assert again.timeline == rep.timeline
    assert [m.scheduled_units for m in again.result.machines] == [m.scheduled_units for m in rep.result.machines]


def test_custom_config_flows_through():
    cfg = ScoringConfig(bottleneck_pct=10.0)
    rep = run_pipeline([bags("A", 400)], _machines(), run_start=RUN_START, cfg=cfg)
    assert rep.bottlenecks["summary"]["bottleneck_count"] == 1


def test_config_from_env():
    cfg = ScoringConfig.from_env({"BAG_PLANNER_WEIGHT_BALANCE": "25", "BAG_PLANNER_URGENCY_CAP": "oops"})
    assert cfg.weight_balance == 25.0
    assert cfg.urgency_cap == 100.0
    assert ScoringConfig.from_env({}) == ScoringConfig()


class _PaperBom:
    def get_material_requirements(self, order):
        from bag_planner.analysis.materials import MaterialRequirement

        return [MaterialRequirement("PAPER", 0.05, "kg")]


class _Stock:
    def get_stock(self, material_id):
        return 30.0


def test_material_check_runs_in_priority_order():
    orders = [bags("LATE", 400, delivery_days=20), bags("RUSH", 400, delivery_days=2)]
    rep = run_pipeline(orders, _machines(), run_start=RUN_START, bom=_PaperBom(), inventory=_Stock())
    assert [(m["order_id"], m["feasible"]) for m in rep.materials] == [("RUSH", True), ("LATE", False)]
    assert rep.materials[1]["shortages"][0]["available"] == pytest.approx(10.0)


def test_material_check_is_off_by_default():
    assert run_pipeline([bags("A", 100)], _machines(), run_start=RUN_START).materials is None
