# src/bag_planner/scheduling/catalog.py
"""Machine catalog.

``MachineSpec`` is the static, immutable description of a converting machine.
``MachineState`` is the per-run snapshot the scheduler mutates; it is always
produced by :func:`clone_for_run` so no two runs share running state.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from .config import FLAT_HANDLE, TWISTED_HANDLE

AVAILABLE = "available"
BUSY = "busy"
MAINTENANCE = "maintenance"
STATUSES = (AVAILABLE, BUSY, MAINTENANCE)

DEFAULT_MAX_HEIGHT = 600.0
DEFAULT_MAX_GUSSET = 200.0
DEFAULT_WORKING_HOURS = 16.0


@dataclass(frozen=True)
class MachineSpec:
    machine_id: str
    name: str
    daily_capacity: float
    hourly_capacity: float
    category: str = ""
    description: str = ""
    supported_handles: tuple[str, ...] = (FLAT_HANDLE,)
    max_colors: int | None = None
    min_width: float | None = None
    max_width: float | None = None
    min_height: float | None = None
    max_height: float = DEFAULT_MAX_HEIGHT
    min_gusset: float | None = None
    max_gusset: float = DEFAULT_MAX_GUSSET
    min_gsm: float | None = None
    max_gsm: float | None = None
    patch_support: bool = False
    working_hours_per_day: float = DEFAULT_WORKING_HOURS
    setup_time_minutes: float = 0.0
    efficiency: float = 1.0
    operator_cost_per_hour: float = 0.0
    energy_cost_per_hour: float = 0.0
    maintenance_cost_per_day: float = 0.0
    status: str = AVAILABLE

    def __post_init__(self):
        if not self.machine_id:
            raise ValueError("machine_id is required")
        if self.daily_capacity < 0:
            raise ValueError(f"{self.machine_id}: daily_capacity must be >= 0")
        if self.hourly_capacity <= 0:
            raise ValueError(f"{self.machine_id}: hourly_capacity must be > 0")
        if self.working_hours_per_day <= 0:
            raise ValueError(f"{self.machine_id}: working_hours_per_day must be > 0")
        if self.setup_time_minutes < 0:
            raise ValueError(f"{self.machine_id}: setup_time_minutes must be >= 0")
        if not 0 < self.efficiency <= 1:
            raise ValueError(f"{self.machine_id}: efficiency must be in (0, 1]")
        if self.status not in STATUSES:
            raise ValueError(f"{self.machine_id}: unknown status {self.status!r}")
        for lo, hi, label in (
            (self.min_width, self.max_width, "width"),
            (self.min_gsm, self.max_gsm, "gsm"),
        ):
            if lo is not None and hi is not None and lo > hi:
                raise ValueError(f"{self.machine_id}: min_{label} > max_{label}")
        # lists from JSON/records are frozen so specs stay hashable
        object.__setattr__(self, "supported_handles", tuple(self.supported_handles))

    @property
    def available(self) -> bool:
        return self.status == AVAILABLE


@dataclass
class MachineState:
    """Running state of one machine for a single scheduling run."""
    spec: MachineSpec
    next_available_time: datetime
    scheduled_units: float = 0.0
    scheduled_hours: float = 0.0
    remaining_daily_capacity: float = field(default=0.0)

    @property
    def machine_id(self) -> str:
        return self.spec.machine_id

    @property
    def utilization(self) -> float:
        return self.scheduled_hours / self.spec.working_hours_per_day

    def assign(self, qty: float, total_hours: float, end: datetime) -> None:
        if end < self.next_available_time:
            raise ValueError(f"{self.machine_id}: availability cannot move backwards")
        self.scheduled_units += qty
        self.scheduled_hours += total_hours
        self.remaining_daily_capacity = max(0.0, self.spec.daily_capacity - self.scheduled_units)
        self.next_available_time = end


def clone_for_run(specs: Iterable[MachineSpec], run_start: datetime) -> list[MachineState]:
    """Fresh running-state snapshots, one per machine, ordered by machine id."""
    states = [
        MachineState(
            spec=s,
            next_available_time=run_start,
            remaining_daily_capacity=float(s.daily_capacity),
        )
        for s in specs
    ]
    return sorted(states, key=lambda st: st.machine_id)


def machine_from_record(rec: dict) -> MachineSpec:
    """Build a MachineSpec from a loosely-typed record (sheet row, JSON body)."""
    data = {k: v for k, v in rec.items() if v is not None and k in MachineSpec.__dataclass_fields__}
    handles = data.get("supported_handles")
    if isinstance(handles, str):
        data["supported_handles"] = tuple(h.strip().upper() for h in handles.split(",") if h.strip())
    data.setdefault("name", data.get("machine_id"))
    return MachineSpec(**data)


def _gm(machine_id: str, **kw) -> MachineSpec:
    base = dict(
        machine_id=machine_id,
        name=machine_id,
        category="GM 5QT",
        description="Garant Triumph 5QT",
        daily_capacity=82000,
        hourly_capacity=5125,
        max_colors=4,
        min_width=800,
        max_width=1100,
        min_gsm=70,
        max_gsm=100,
        setup_time_minutes=30,
        efficiency=0.92,
        operator_cost_per_hour=18,
        energy_cost_per_hour=12,
        maintenance_cost_per_day=25,
    )
    base.update(kw)
    return MachineSpec(**base)


def _nl(machine_id: str) -> MachineSpec:
    return MachineSpec(
        machine_id=machine_id,
        name=machine_id,
        category="NL",
        description="Newlong flat-handle line",
        daily_capacity=65600,
        hourly_capacity=4100,
        max_colors=2,
        min_width=750,
        max_width=1000,
        min_gsm=75,
        max_gsm=95,
        setup_time_minutes=25,
        efficiency=0.90,
        operator_cost_per_hour=16,
        energy_cost_per_hour=10,
        maintenance_cost_per_day=20,
    )


DEFAULT_FLEET: tuple[MachineSpec, ...] = (
    _gm("M1"),
    _gm("M2"),
    _gm("M3"),
    _gm("M4"),
    _gm("M5", max_width=1200, min_width=700, max_gsm=110, setup_time_minutes=45,
        efficiency=0.88, operator_cost_per_hour=20, energy_cost_per_hour=14,
        maintenance_cost_per_day=30),
    _gm("M6", category="GM 5QT TH", supported_handles=(TWISTED_HANDLE,), patch_support=True,
        max_width=1200, min_width=700, max_gsm=110, setup_time_minutes=60, efficiency=0.85,
        operator_cost_per_hour=22, energy_cost_per_hour=16, maintenance_cost_per_day=35),
    _nl("NL1"),
    _nl("NL2"),
)
