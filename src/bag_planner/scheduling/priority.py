# src/bag_planner/scheduling/priority.py
from __future__ import annotations

from dataclasses import dataclass

from .config import DEFAULT_CONFIG, ScoringConfig
from .orders import Order


@dataclass(frozen=True)
class RankedOrder:
    order: Order
    priority: float


def priority_score(order: Order, index: int, cfg: ScoringConfig = DEFAULT_CONFIG) -> float:
    days = order.delivery_days if order.delivery_days is not None else cfg.default_delivery_days
    urgency = min(cfg.urgency_cap, max(0.0, (cfg.urgency_horizon_days - days) * cfg.urgency_per_day))
    size = min(cfg.size_cap, order.base_quantity / cfg.size_divisor)
    handle = cfg.twisted_bonus if order.handle_type == cfg.specialized_handle else 0.0
    seq = min(cfg.sequence_cap, max(0.0, (cfg.sequence_base - index) * cfg.sequence_factor))
    return urgency + size + handle + seq


def prioritize(orders: list[Order], cfg: ScoringConfig = DEFAULT_CONFIG) -> list[RankedOrder]:
    """Rank orders by descending priority; equal scores keep input order.

    The sequence term uses ``Order.sequence`` (the row's position in the raw
    input), so rejected rows do not shift the orders after them.
    """
    ranked = [RankedOrder(o, priority_score(o, o.sequence, cfg)) for o in orders]
    # sorted() is stable
    return sorted(ranked, key=lambda r: -r.priority)
