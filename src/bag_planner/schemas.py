from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class MachineIn(BaseModel):
    machine_id: str
    name: str | None = None
    category: str = ""
    description: str = ""
    supported_handles: list[str] = Field(default_factory=lambda: ["FLAT HANDLE"])
    max_colors: int | None = None
    min_width: float | None = None
    max_width: float | None = None
    min_height: float | None = None
    max_height: float = 600.0
    min_gusset: float | None = None
    max_gusset: float = 200.0
    min_gsm: float | None = None
    max_gsm: float | None = None
    patch_support: bool = False
    daily_capacity: float
    hourly_capacity: float
    working_hours_per_day: float = 16.0
    setup_time_minutes: float = 0.0
    efficiency: float = 1.0
    operator_cost_per_hour: float = 0.0
    energy_cost_per_hour: float = 0.0
    maintenance_cost_per_day: float = 0.0
    status: str = "available"


class ScheduleRequest(BaseModel):
    # raw order records; malformed ones come back under "rejected"
    orders: list[dict[str, Any]]
    machines: list[MachineIn] | None = None
    run_start: datetime | None = None
    consolidate: bool = False
    max_assignments: int | None = Field(default=None, ge=0)
    save: bool = False


class BatchScheduleRequest(BaseModel):
    run_start: datetime | None = None
    consolidate: bool = False
    max_assignments: int | None = Field(default=None, ge=0)


class ScheduleEntryOut(BaseModel):
    order_id: str
    machine_id: str
    quantity: float
    start_ts: datetime
    end_ts: datetime
    setup_hours: float
    production_hours: float
    total_hours: float
    priority: float


class TimelineEventOut(BaseModel):
    machine_id: str
    kind: str
    start_ts: datetime
    end_ts: datetime
    order_id: str | None = None
    quantity: float | None = None
    priority: str


class InfeasibleOut(BaseModel):
    order_id: str
    reasons: dict[str, list[str]]


class RejectedOut(BaseModel):
    index: int
    order_id: str
    reason: str


class MachineUtilizationOut(BaseModel):
    machine_id: str
    scheduled_units: float
    scheduled_hours: float
    remaining_daily_capacity: float
    utilization_pct: float
    next_available_time: datetime


class ScheduleResponse(BaseModel):
    run_id: int | None = None
    run_start: datetime
    load_balance_score: float
    total_orders: int
    entries: list[ScheduleEntryOut]
    infeasible: list[InfeasibleOut]
    rejected: list[RejectedOut]
    machines: list[MachineUtilizationOut]
    timeline: list[TimelineEventOut]
    bottlenecks: dict[str, Any]


class BatchOut(BaseModel):
    id: int
    file_name: str
    total_orders: int
    rejected_orders: int
    uploaded_at: datetime | None = None
