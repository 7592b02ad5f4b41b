from conftest import RUN_START, bags, make_machine
from openpyxl import load_workbook

from bag_planner.export.report import export_excel
from bag_planner.scheduling.pipeline import run_pipeline


def _report(orders):
    machines = [make_machine("M1"), make_machine("M2", supported_handles=("TWISTED HANDLE",))]
    return run_pipeline(orders, machines, run_start=RUN_START)


def test_workbook_sheets_and_gantt(tmp_path):
    rep = _report([bags("A", 400), bags("B", 300), bags("C", 5000), {"order_id": "D"}])
    xlsx, png = export_excel(rep, tmp_path / "out" / "plan.xlsx")
    assert xlsx.exists()
    assert png is not None and png.exists()

    wb = load_workbook(xlsx)
    assert wb.sheetnames == ["schedule", "timeline", "machines", "bottlenecks", "infeasible", "KPI"]
    sched = list(wb["schedule"].values)
    assert sched[0][:2] == ("order_id", "machine_id")
    assert {r[0] for r in sched[1:]} == {"A", "B"}
    issues = {r[0]: r[1] for r in list(wb["infeasible"].values)[1:]}
    assert issues == {"C": "infeasible", "D": "rejected"}
    kpi = {r[0]: r[1] for r in wb["KPI"].values}
    assert kpi["orders in"] == 4
    assert kpi["scheduled"] == 2


def test_empty_schedule_has_no_gantt(tmp_path):
    xlsx, png = export_excel(_report([]), tmp_path / "empty.xlsx")
    assert xlsx.exists()
    assert png is None


class _Bom:
    def get_material_requirements(self, order):
        from bag_planner.analysis.materials import MaterialRequirement

        return [MaterialRequirement("PAPER", 0.05, "kg")]


class _NoStock:
    def get_stock(self, material_id):
        return 0


def test_materials_sheet_when_checked(tmp_path):
    machines = [make_machine("M1")]
    rep = run_pipeline([bags("A", 400)], machines, run_start=RUN_START, bom=_Bom(), inventory=_NoStock())
    xlsx, _ = export_excel(rep, tmp_path / "m.xlsx")
    wb = load_workbook(xlsx)
    assert "materials" in wb.sheetnames
    rows = list(wb["materials"].values)
    assert rows[0][:3] == ("order_id", "feasible", "material_id")
    assert rows[1][0] == "A" and rows[1][1] is False and rows[1][2] == "PAPER"
