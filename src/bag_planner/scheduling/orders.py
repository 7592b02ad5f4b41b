# src/bag_planner/scheduling/orders.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import FLAT_HANDLE, KNOWN_HANDLES

logger = logging.getLogger("bag_planner.orders")

DEFAULT_BAGS_PER_CARTON = 1000
DEFAULT_DELIVERY_DAYS = 14


class Order(BaseModel):
    """One customer order. Immutable once validated."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    order_id: str
    sequence: int = 0
    bag_name: str | None = None
    sku: str | None = None
    quantity: float = Field(gt=0)
    unit: Literal["bags", "cartons"] = "cartons"
    bags_per_carton: int = Field(default=DEFAULT_BAGS_PER_CARTON, gt=0)
    width: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    gusset: float | None = Field(default=None, gt=0)
    gsm: float | None = Field(default=None, gt=0)
    handle_type: str = FLAT_HANDLE
    colors: int = Field(default=0, ge=0, le=8)
    delivery_days: float | None = Field(default=DEFAULT_DELIVERY_DAYS, ge=0)

    @field_validator("handle_type", mode="before")
    @classmethod
    def _known_handle(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            return FLAT_HANDLE
        h = str(v).strip().upper()
        if h not in KNOWN_HANDLES:
            raise ValueError(f"unknown handle type {v!r}")
        return h

    @field_validator("unit", mode="before")
    @classmethod
    def _norm_unit(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            return "cartons"
        return str(v).strip().lower()

    @property
    def base_quantity(self) -> float:
        """Quantity in bags."""
        if self.unit == "cartons":
            return self.quantity * self.bags_per_carton
        return self.quantity


@dataclass(frozen=True)
class RejectedOrder:
    index: int
    order_id: str
    reason: str


def _order_id_for(raw: Mapping[str, Any], index: int) -> str:
    oid = raw.get("order_id")
    if oid is None or str(oid).strip() == "":
        return f"ORDER_{index + 1}"
    return str(oid).strip()


def _short_error(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(x) for x in e.get("loc", ())) or "order"
        parts.append(f"{loc}: {e.get('msg')}")
    return "; ".join(parts)


def validate_orders(rows: Iterable[Mapping[str, Any] | Order]) -> tuple[list[Order], list[RejectedOrder]]:
    """Split raw rows into valid orders and rejected (malformed) ones.

    Each valid order gets ``sequence`` = its position in the input; one bad row
    never prevents the rest from being validated.
    """
    valid: list[Order] = []
    rejected: list[RejectedOrder] = []
    for i, raw in enumerate(rows):
        if isinstance(raw, Order):
            valid.append(raw.model_copy(update={"sequence": i}))
            continue
        if not isinstance(raw, Mapping):
            rejected.append(RejectedOrder(i, f"ORDER_{i + 1}", "order must be a mapping"))
            continue
        oid = _order_id_for(raw, i)
        data = {k: v for k, v in raw.items() if v is not None}
        data["order_id"] = oid
        data["sequence"] = i
        if "quantity" not in data:
            rejected.append(RejectedOrder(i, oid, "quantity: missing"))
            continue
        try:
            valid.append(Order.model_validate(data))
        except ValidationError as e:
            reason = _short_error(e)
            logger.warning("rejected order %s: %s", oid, reason)
            rejected.append(RejectedOrder(i, oid, reason))
    return valid, rejected


def consolidate_by_sku(orders: list[Order]) -> list[Order]:
    """Merge orders sharing a SKU (or bag name) into one order counted in bags.

    The merged order keeps the first order's specs and the tightest delivery
    window; orders without a key are left untouched.
    """
    groups: dict[str, list[Order]] = {}
    out_keys: list[str | Order] = []
    for o in orders:
        key = o.sku or o.bag_name
        if not key:
            out_keys.append(o)
            continue
        if key not in groups:
            groups[key] = []
            out_keys.append(key)
        groups[key].append(o)

    result: list[Order] = []
    for k in out_keys:
        if isinstance(k, Order):
            result.append(k)
            continue
        group = groups[k]
        if len(group) == 1:
            result.append(group[0])
            continue
        first = group[0]
        windows = [o.delivery_days for o in group if o.delivery_days is not None]
        result.append(first.model_copy(update={
            "quantity": sum(o.base_quantity for o in group),
            "unit": "bags",
            "delivery_days": min(windows) if windows else None,
        }))
    return [o.model_copy(update={"sequence": i}) for i, o in enumerate(result)]
