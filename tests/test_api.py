import io

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bag_planner.api.app import app
from bag_planner.db import get_db, init_db, make_engine


@pytest.fixture
def client():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=eng)
    TestSession = sessionmaker(bind=eng, autoflush=False, expire_on_commit=False)

    def _get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    # startup hook is not triggered outside a `with` block, so the file DB is never touched
    yield TestClient(app)
    app.dependency_overrides.clear()
    eng.dispose()


ORDERS = [
    {"order_id": "A", "quantity": 20, "width": 850, "gsm": 80, "delivery_days": 5},
    {"order_id": "B", "quantity": 10, "width": 900, "gsm": 90, "handle_type": "twisted handle"},
    {"order_id": "C", "quantity": 500, "width": 850, "gsm": 80},
    {"order_id": "D", "quantity": -1},
]


def test_health_and_machines(client):
    assert client.get("/health").json() == {"status": "ok"}
    machines = client.get("/machines").json()
    assert [m["machine_id"] for m in machines][:2] == ["M1", "M2"]
    m6 = next(m for m in machines if m["machine_id"] == "M6")
    assert m6["supported_handles"] == ["TWISTED HANDLE"]
    assert m6["available"] is True


def test_schedule_default_fleet(client):
    r = client.post("/schedule", json={"orders": ORDERS, "run_start": "2025-03-03T06:00:00"})
    assert r.status_code == 200
    body = r.json()
    assert body["run_id"] is None
    assert body["total_orders"] == 4
    placed = {e["order_id"]: e["machine_id"] for e in body["entries"]}
    assert set(placed) == {"A", "B"}
    assert placed["B"] == "M6"
    assert [i["order_id"] for i in body["infeasible"]] == ["C"]
    assert [r["order_id"] for r in body["rejected"]] == ["D"]
    assert len(body["machines"]) == 8
    assert body["timeline"]
    assert "summary" in body["bottlenecks"]


def test_schedule_with_custom_machines(client):
    machines = [{"machine_id": "X1", "daily_capacity": 1000, "hourly_capacity": 100, "setup_time_minutes": 30}]
    orders = [{"order_id": "A", "quantity": 400, "unit": "bags"}]
    body = client.post("/schedule", json={
        "orders": orders, "machines": machines, "run_start": "2025-03-03T08:00:00",
    }).json()
    (entry,) = body["entries"]
    assert entry["machine_id"] == "X1"
    assert entry["end_ts"] == "2025-03-03T12:30:00"


def test_schedule_rejects_bad_machine(client):
    machines = [{"machine_id": "X1", "daily_capacity": 1000, "hourly_capacity": 100, "efficiency": 2}]
    r = client.post("/schedule", json={"orders": [], "machines": machines})
    assert r.status_code == 400


def test_saved_run_roundtrip_and_export(client):
    r = client.post("/schedule", json={"orders": ORDERS, "run_start": "2025-03-03T06:00:00", "save": True})
    body = r.json()
    run_id = body["run_id"]
    assert run_id is not None

    stored = client.get(f"/runs/{run_id}").json()
    assert stored["entries"] == body["entries"]
    assert stored["load_balance_score"] == body["load_balance_score"]
    assert [i["order_id"] for i in stored["infeasible"]] == ["C"]

    x = client.get(f"/runs/{run_id}/export")
    assert x.status_code == 200
    wb = load_workbook(io.BytesIO(x.content))
    assert "schedule" in wb.sheetnames
    assert client.get("/runs/999").status_code == 404


def test_batch_lifecycle(client):
    csv = "Order ID,Qty,Unit,Width,GSM,Handle Type\nA,400,bags,850,80,Flat Handle\nB,,bags,850,80,\n"
    r = client.post("/batches", files={"file": ("orders.csv", csv.encode(), "text/csv")})
    assert r.status_code == 200
    batch = r.json()
    assert batch["total_orders"] == 2
    assert batch["rejected_orders"] == 1

    assert [b["id"] for b in client.get("/batches").json()] == [batch["id"]]

    sched = client.post(f"/batches/{batch['id']}/schedule", json={"run_start": "2025-03-03T06:00:00"}).json()
    assert sched["run_id"] is not None
    assert [e["order_id"] for e in sched["entries"]] == ["A"]

    detail = client.get(f"/batches/{batch['id']}").json()
    assert [run["id"] for run in detail["runs"]] == [sched["run_id"]]

    assert client.delete(f"/batches/{batch['id']}").json() == {"deleted": batch["id"]}
    assert client.get(f"/batches/{batch['id']}").status_code == 404
    assert client.get(f"/runs/{sched['run_id']}").status_code == 404


def test_batch_upload_without_quantity_column(client):
    r = client.post("/batches", files={"file": ("o.csv", b"order_id,width\nA,800\n", "text/csv")})
    assert r.status_code == 400
