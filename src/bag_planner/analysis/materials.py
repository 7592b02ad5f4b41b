"""Material feasibility on top of the external BOM and inventory services.

Neither service is implemented here; callers pass anything matching the
protocols below. Stock lookups that fail count as zero stock.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

from ..scheduling.orders import Order

logger = logging.getLogger("bag_planner.materials")


@dataclass(frozen=True)
class MaterialRequirement:
    material_id: str
    qty_per_unit: float
    unit: str


class BomCalculator(Protocol):
    def get_material_requirements(self, order: Order) -> list[MaterialRequirement]: ...


class InventoryService(Protocol):
    def get_stock(self, material_id: str) -> float: ...


def _stock(inventory: InventoryService, material_id: str) -> float:
    try:
        return float(inventory.get_stock(material_id) or 0.0)
    except Exception:  # pylint: disable=broad-except
        logger.warning("stock lookup failed for %s; treating as 0", material_id, exc_info=True)
        return 0.0


def check_materials(
    orders: Iterable[Order],
    bom: BomCalculator,
    inventory: InventoryService,
) -> list[dict]:
    """Walk orders in sequence against a running stock total.

    Returns one record per order with ``feasible`` and the list of shortages;
    stock is only consumed by orders that are fully covered.
    """
    running: dict[str, float] = {}
    out = []
    for o in orders:
        reqs = bom.get_material_requirements(o)
        need: dict[str, tuple[float, str]] = {}
        for r in reqs:
            total, unit = need.get(r.material_id, (0.0, r.unit))
            need[r.material_id] = (total + r.qty_per_unit * o.base_quantity, unit)

        shortages = []
        for mid, (required, unit) in need.items():
            if mid not in running:
                running[mid] = _stock(inventory, mid)
            have = running[mid]
            if have < required:
                shortages.append({
                    "material_id": mid,
                    "required": required,
                    "available": have,
                    "unit": unit,
                })
        feasible = not shortages
        if feasible:
            for mid, (required, _) in need.items():
                running[mid] -= required
        out.append({"order_id": o.order_id, "feasible": feasible, "shortages": shortages})
    return out
