# === imports ===
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import FileResponse
import logging
import os
import tempfile
import uuid
from dataclasses import asdict

from sqlalchemy.orm import Session

from ..batches import get_run, run_report, save_run
from ..db import get_db, init_db, set_request_id
from ..scheduling.catalog import DEFAULT_FLEET, machine_from_record
from ..scheduling.pipeline import run_pipeline
from ..export.report import export_excel
from ..schemas import ScheduleRequest, ScheduleResponse
from .responses import report_to_response
from .routers import batches

logger = logging.getLogger("bag_planner.api")

# ================== App ==================
app = FastAPI(title="Bag Planner API")
app.include_router(batches.router)


# Attach per-request id for DB logs
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
    set_request_id(rid)
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


@app.on_event("startup")
def _startup():
    # Basic logging setup (ensure scheduler logs are visible)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    init_db()


# ================== Routes ==================
@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/machines")
def list_machines():
    return [asdict(m) | {"available": m.available} for m in DEFAULT_FLEET]


@app.post("/schedule", response_model=ScheduleResponse)
def schedule_orders(req: ScheduleRequest, db: Session = Depends(get_db)):
    try:
        machines = [machine_from_record(m.model_dump()) for m in req.machines] if req.machines is not None else DEFAULT_FLEET
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    report = run_pipeline(
        req.orders,
        machines,
        run_start=req.run_start,
        consolidate=req.consolidate,
        max_assignments=req.max_assignments,
    )
    run_id = save_run(db, report).id if req.save else None
    return report_to_response(report, run_id)


@app.get("/runs/{run_id}", response_model=ScheduleResponse)
def get_run_report(run_id: int, db: Session = Depends(get_db)):
    run = get_run(db, run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"run {run_id} not found")
    return report_to_response(run_report(run), run.id)


@app.get("/runs/{run_id}/export")
def export_run(run_id: int, db: Session = Depends(get_db)):
    run = get_run(db, run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"run {run_id} not found")
    out_dir = tempfile.mkdtemp(prefix="bag_planner_")
    out_xlsx, _ = export_excel(run_report(run), os.path.join(out_dir, f"schedule_run_{run_id}.xlsx"))
    return FileResponse(
        str(out_xlsx),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=out_xlsx.name,
    )
