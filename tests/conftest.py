import datetime as dt

import pytest

from bag_planner.scheduling.catalog import MachineSpec
from bag_planner.scheduling.greedy_scheduler import ScheduleEntry

RUN_START = dt.datetime(2025, 3, 3, 8, 0)


def make_machine(machine_id="M1", **kw) -> MachineSpec:
    base = dict(
        machine_id=machine_id,
        name=machine_id,
        daily_capacity=1000,
        hourly_capacity=100,
        setup_time_minutes=30,
        efficiency=1.0,
        working_hours_per_day=16,
        supported_handles=("FLAT HANDLE",),
    )
    base.update(kw)
    return MachineSpec(**base)


def make_entry(order_id, machine_id, start, total_hours, setup_hours=0.5, quantity=100.0, priority=0.0):
    return ScheduleEntry(
        order_id=order_id,
        machine_id=machine_id,
        quantity=quantity,
        start=start,
        end=start + dt.timedelta(hours=total_hours),
        setup_hours=setup_hours,
        production_hours=total_hours - setup_hours,
        total_hours=total_hours,
        priority=priority,
    )


def bags(order_id, qty, **kw):
    rec = {"order_id": order_id, "quantity": qty, "unit": "bags"}
    rec.update(kw)
    return rec


@pytest.fixture
def run_start():
    return RUN_START
