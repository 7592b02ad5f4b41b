import pytest

from bag_planner.analysis.materials import MaterialRequirement, check_materials
from bag_planner.scheduling.orders import Order


class PaperBom:
    def get_material_requirements(self, order):
        return [MaterialRequirement("PAPER", 0.05, "kg"), MaterialRequirement("GLUE", 0.001, "kg")]


class Stock:
    def __init__(self, levels, broken=()):
        self.levels = levels
        self.broken = set(broken)

    def get_stock(self, material_id):
        if material_id in self.broken:
            raise ConnectionError("inventory offline")
        return self.levels.get(material_id, 0)


def _orders():
    return [Order(order_id=o, quantity=400, unit="bags") for o in ("A", "B")]


def test_running_stock_total():
    out = check_materials(_orders(), PaperBom(), Stock({"PAPER": 30, "GLUE": 10}))
    assert [o["feasible"] for o in out] == [True, False]
    (short,) = out[1]["shortages"]
    assert short["material_id"] == "PAPER"
    assert short["required"] == pytest.approx(20)
    assert short["available"] == pytest.approx(10)
    assert short["unit"] == "kg"


def test_failed_lookup_counts_as_zero_stock():
    out = check_materials(_orders()[:1], PaperBom(), Stock({"PAPER": 100}, broken={"GLUE"}))
    assert not out[0]["feasible"]
    assert out[0]["shortages"][0]["material_id"] == "GLUE"
    assert out[0]["shortages"][0]["available"] == 0
