# src/bag_planner/scheduling/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from datetime import time

logger = logging.getLogger("bag_planner.config")

ENV_PREFIX = "BAG_PLANNER_"

FLAT_HANDLE = "FLAT HANDLE"
TWISTED_HANDLE = "TWISTED HANDLE"
NO_HANDLE = "NO HANDLE"
KNOWN_HANDLES = (FLAT_HANDLE, TWISTED_HANDLE, NO_HANDLE)


@dataclass
class ScoringConfig:
    # Order priority (additive, each term capped)
    urgency_horizon_days: float = 21.0
    urgency_per_day: float = 5.0
    urgency_cap: float = 100.0
    size_divisor: float = 1000.0
    size_cap: float = 50.0
    twisted_bonus: float = 20.0
    sequence_base: float = 100.0
    sequence_factor: float = 0.1
    sequence_cap: float = 10.0
    default_delivery_days: float = 14.0

    # Machine scoring
    weight_balance: float = 40.0
    fit_optimal_low: float = 0.6
    fit_optimal_high: float = 0.8
    fit_good_low: float = 0.4
    weight_fit_optimal: float = 30.0
    weight_fit_good: float = 20.0
    weight_fit_small: float = 10.0
    weight_efficiency: float = 15.0
    specialist_bonus: float = 10.0
    standard_bonus: float = 5.0
    setup_penalty_per_hour: float = 2.0
    specialized_handle: str = TWISTED_HANDLE

    # Load balance
    balance_variance_factor: float = 1000.0

    # Bottlenecks (percent)
    bottleneck_pct: float = 90.0
    underutilized_pct: float = 50.0

    # Working day used by the timeline
    day_start: time = time(6, 0)
    day_end: time = time(22, 0)

    @classmethod
    def from_env(cls, environ: dict | None = None) -> "ScoringConfig":
        """Build a config, overriding numeric fields from BAG_PLANNER_<FIELD> variables."""
        env = os.environ if environ is None else environ
        cfg = cls()
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            current = getattr(cfg, f.name)
            if not isinstance(current, float):
                continue
            try:
                setattr(cfg, f.name, float(raw))
            except ValueError:
                logger.warning("ignoring %s%s=%r: not a number", ENV_PREFIX, f.name.upper(), raw)
        return cfg


DEFAULT_CONFIG = ScoringConfig()
