# src/bag_planner/db/models.py
from datetime import datetime

from sqlalchemy import (
    String, Integer, Float, DateTime, ForeignKey, JSON, Index
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func
from . import Base

# ---------- Uploaded order batches ----------
class OrderBatch(Base):
    __tablename__ = "order_batches"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rejected_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # raw order records as read from the sheet
    orders: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), index=True)

    runs = relationship("ScheduleRun", back_populates="batch", cascade="all, delete-orphan")

# ---------- Scheduling runs ----------
class ScheduleRun(Base):
    __tablename__ = "schedule_runs"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("order_batches.id"), index=True, nullable=True)
    run_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    feasible: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    load_balance_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # infeasible / rejected orders and the bottleneck report
    report: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    batch = relationship("OrderBatch", back_populates="runs")
    entries = relationship("ScheduleEntryRow", back_populates="run", cascade="all, delete-orphan")

class ScheduleEntryRow(Base):
    __tablename__ = "schedule_entries"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[int] = mapped_column(Integer, ForeignKey("schedule_runs.id"), index=True, nullable=False)
    order_id: Mapped[str] = mapped_column(String, index=True)
    machine_id: Mapped[str] = mapped_column(String, index=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    start_ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_ts: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    setup_hours: Mapped[float] = mapped_column(Float, default=0.0)
    production_hours: Mapped[float] = mapped_column(Float, default=0.0)
    total_hours: Mapped[float] = mapped_column(Float, default=0.0)
    priority: Mapped[float] = mapped_column(Float, default=0.0)

    run = relationship("ScheduleRun", back_populates="entries")

    __table_args__ = (
        Index("ix_entries_machine_start", "machine_id", "start_ts"),
    )
