# src/bag_planner/scheduling/scoring.py
from __future__ import annotations

from typing import Iterable

from .catalog import MachineState
from .config import DEFAULT_CONFIG, ScoringConfig
from .orders import Order


def capacity_fit_bonus(usage: float, cfg: ScoringConfig = DEFAULT_CONFIG) -> float:
    if cfg.fit_optimal_low <= usage <= cfg.fit_optimal_high:
        return cfg.weight_fit_optimal
    if cfg.fit_good_low <= usage < cfg.fit_optimal_low:
        return cfg.weight_fit_good
    if usage < cfg.fit_good_low:
        return cfg.weight_fit_small
    return 0.0


def score_machine(machine: MachineState, order: Order, cfg: ScoringConfig = DEFAULT_CONFIG) -> float:
    """Suitability of an already-compatible machine for an order (higher is better)."""
    spec = machine.spec
    score = (1.0 - machine.scheduled_hours / spec.working_hours_per_day) * cfg.weight_balance

    remaining = machine.remaining_daily_capacity
    usage = order.base_quantity / remaining if remaining > 0 else float("inf")
    score += capacity_fit_bonus(usage, cfg)

    score += spec.efficiency * cfg.weight_efficiency

    is_specialist = cfg.specialized_handle in spec.supported_handles
    if order.handle_type == cfg.specialized_handle:
        if is_specialist:
            score += cfg.specialist_bonus
    elif not is_specialist:
        score += cfg.standard_bonus

    score -= (spec.setup_time_minutes / 60.0) * cfg.setup_penalty_per_hour
    return score


def select_best(
    candidates: Iterable[MachineState], order: Order, cfg: ScoringConfig = DEFAULT_CONFIG
) -> tuple[MachineState | None, float]:
    """Highest-scoring candidate; ties go to the lowest machine id."""
    best: MachineState | None = None
    best_score = float("-inf")
    for m in sorted(candidates, key=lambda st: st.machine_id):
        s = score_machine(m, order, cfg)
        if s > best_score:
            best, best_score = m, s
    return best, best_score
