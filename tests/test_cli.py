from bag_planner.cli import main


def test_machines_command(capsys):
    assert main(["machines"]) == 0
    out = capsys.readouterr().out
    assert "M6" in out
    assert "TWISTED HANDLE" in out


def test_run_command(tmp_path, capsys):
    orders = tmp_path / "orders.csv"
    orders.write_text("order_id,quantity,width,gsm\nA,20,850,80\nB,15,900,85\n")
    out = tmp_path / "plan.xlsx"
    assert main(["run", "--orders", str(orders), "--start", "2025-03-03T06:00", "--out", str(out)]) == 0
    assert out.exists()
    assert "Scheduled: 2" in capsys.readouterr().out


def test_run_command_can_save(tmp_path, monkeypatch, capsys):
    from contextlib import contextmanager

    from sqlalchemy.orm import Session
    from sqlalchemy.pool import StaticPool

    from bag_planner import cli
    from bag_planner.db import init_db, make_engine
    from bag_planner.db.models import ScheduleRun

    eng = make_engine("sqlite://", poolclass=StaticPool)

    @contextmanager
    def scope():
        with Session(eng) as db:
            yield db
            db.commit()

    monkeypatch.setattr(cli, "init_db", lambda: init_db(bind=eng))
    monkeypatch.setattr(cli, "session_scope", scope)

    orders = tmp_path / "orders.csv"
    orders.write_text("order_id,quantity\nA,5\n")
    assert main(["run", "--orders", str(orders), "--out", str(tmp_path / "p.xlsx"), "--save"]) == 0
    assert "Saved run 1" in capsys.readouterr().out
    with Session(eng) as db:
        assert db.get(ScheduleRun, 1).feasible == 1
