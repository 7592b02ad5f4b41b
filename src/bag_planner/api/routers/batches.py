# src/bag_planner/api/routers/batches.py
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session
import io
import logging
from pathlib import Path

import pandas as pd

from ...batches import create_batch, delete_batch, get_batch, list_batches, save_run
from ...db import get_db
from ...ingest.loader import orders_from_frame
from ...scheduling.catalog import DEFAULT_FLEET
from ...scheduling.orders import validate_orders
from ...scheduling.pipeline import run_pipeline
from ...schemas import BatchOut, BatchScheduleRequest, ScheduleResponse
from ..responses import report_to_response

router = APIRouter(prefix="/batches", tags=["batches"])
logger = logging.getLogger("bag_planner.api.batches")


def _read_upload(name: str, payload: bytes) -> pd.DataFrame:
    if Path(name).suffix.lower() == ".csv":
        return pd.read_csv(io.BytesIO(payload), dtype=object)
    return pd.read_excel(io.BytesIO(payload), sheet_name=0, dtype=object, engine="openpyxl")


def _batch_out(b) -> BatchOut:
    return BatchOut(
        id=b.id,
        file_name=b.file_name,
        total_orders=b.total_orders,
        rejected_orders=b.rejected_orders,
        uploaded_at=b.uploaded_at,
    )


@router.post("", response_model=BatchOut)
async def upload_batch(file: UploadFile = File(...), db: Session = Depends(get_db)):
    name = file.filename or "orders.xlsx"
    payload = await file.read()
    try:
        rows = orders_from_frame(_read_upload(name, payload))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not rows:
        raise HTTPException(status_code=400, detail="no order rows found")
    _, rejected = validate_orders(rows)
    return _batch_out(create_batch(db, name, rows, rejected=len(rejected)))


@router.get("", response_model=list[BatchOut])
def get_batches(db: Session = Depends(get_db)):
    return [_batch_out(b) for b in list_batches(db)]


@router.get("/{batch_id}")
def get_batch_detail(batch_id: int, db: Session = Depends(get_db)):
    b = get_batch(db, batch_id)
    if b is None:
        raise HTTPException(status_code=404, detail=f"batch {batch_id} not found")
    return {
        **_batch_out(b).model_dump(),
        "orders": b.orders,
        "runs": [
            {"id": r.id, "run_start": r.run_start, "feasible": r.feasible,
             "load_balance_score": r.load_balance_score}
            for r in b.runs
        ],
    }


@router.delete("/{batch_id}")
def remove_batch(batch_id: int, db: Session = Depends(get_db)):
    if not delete_batch(db, batch_id):
        raise HTTPException(status_code=404, detail=f"batch {batch_id} not found")
    return {"deleted": batch_id}


@router.post("/{batch_id}/schedule", response_model=ScheduleResponse)
def schedule_batch(batch_id: int, req: BatchScheduleRequest | None = None, db: Session = Depends(get_db)):
    b = get_batch(db, batch_id)
    if b is None:
        raise HTTPException(status_code=404, detail=f"batch {batch_id} not found")
    req = req or BatchScheduleRequest()
    report = run_pipeline(
        b.orders,
        DEFAULT_FLEET,
        run_start=req.run_start,
        consolidate=req.consolidate,
        max_assignments=req.max_assignments,
    )
    run = save_run(db, report, batch_id=b.id)
    logger.info("batch %s scheduled as run %s (%d/%d)", b.id, run.id, run.feasible, run.total_orders)
    return report_to_response(report, run.id)
