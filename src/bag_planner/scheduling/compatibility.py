# src/bag_planner/scheduling/compatibility.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .catalog import MachineState
from .orders import Order


@dataclass(frozen=True)
class Compatible:
    compatible = True
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class Incompatible:
    reasons: tuple[str, ...] = ()
    compatible = False


CompatibilityResult = Union[Compatible, Incompatible]


def _range_reason(label: str, value: float | None, lo: float | None, hi: float | None) -> str | None:
    if value is None:
        return None
    if hi is not None and value > hi:
        return f"{label} {value:g} exceeds max {hi:g}"
    if lo is not None and value < lo:
        return f"{label} {value:g} below min {lo:g}"
    return None


def check_compatibility(machine: MachineState, order: Order) -> CompatibilityResult:
    """Check an order against the machine's envelope and *current* remaining capacity.

    Every failing check contributes a reason; nothing is mutated.
    """
    spec = machine.spec
    reasons: list[str] = []

    if not spec.available:
        reasons.append(f"machine {spec.machine_id} is {spec.status}")
    for r in (
        _range_reason("width", order.width, spec.min_width, spec.max_width),
        _range_reason("height", order.height, spec.min_height, spec.max_height),
        _range_reason("gusset", order.gusset, spec.min_gusset, spec.max_gusset),
        _range_reason("gsm", order.gsm, spec.min_gsm, spec.max_gsm),
    ):
        if r:
            reasons.append(r)
    if order.handle_type not in spec.supported_handles:
        reasons.append(f"handle {order.handle_type} not supported")
    if spec.max_colors is not None and order.colors > spec.max_colors:
        reasons.append(f"{order.colors} colors exceeds max {spec.max_colors}")
    qty = order.base_quantity
    if machine.remaining_daily_capacity < qty:
        reasons.append(
            f"remaining capacity {machine.remaining_daily_capacity:g} < quantity {qty:g}"
        )

    if reasons:
        return Incompatible(tuple(reasons))
    return Compatible()
