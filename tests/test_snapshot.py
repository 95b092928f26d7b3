from __future__ import annotations

import json
import logging

from conftest import line
from tillpoint.db.models import DaySession


def _close_with_one_paid_order(manager, ledger, seed):
    created = ledger.create_order(seed["john"], 5, [line(seed["heineken"], 2), line(seed["corona"], 1)],
                                  customer_name="Ana")
    ledger.mark_paid(created.order.id)
    return manager.close_session()


def test_close_writes_snapshot(manager, ledger, seed, started, backup_dir):
    closed = _close_with_one_paid_order(manager, ledger, seed)

    files = list(backup_dir.glob(f"session_{closed.id}_*.json"))
    assert len(files) == 1

    data = json.loads(files[0].read_text(encoding="utf-8"))
    assert data["session_id"] == closed.id
    assert data["total_revenue"] == 16.0
    assert data["total_orders"] == 1
    assert data["closed_at"] is not None
    assert len(data["orders"]) == 1

    order = data["orders"][0]
    assert order["status"] == "paid"
    assert order["staff_name"] == "John"
    assert order["customer_name"] == "Ana"
    assert order["total"] == 16.0
    assert [(i["product_name"], i["quantity"], i["price_at_sale"]) for i in order["items"]] == [
        ("Heineken", 2, 5.0),
        ("Corona", 1, 6.0),
    ]


def test_snapshot_files_are_write_once(manager, ledger, seed, started, till, exporter, backup_dir):
    _close_with_one_paid_order(manager, ledger, seed)
    [first] = list(backup_dir.glob("session_*.json"))
    before = first.read_text(encoding="utf-8")

    with till.transaction() as db:
        snapshot = exporter.gather(db, db.get(DaySession, started.id))

    assert exporter.write(snapshot) is None
    assert first.read_text(encoding="utf-8") == before


def test_unwritable_backup_dir_does_not_fail_close(manager, ledger, seed, started, backup_dir, caplog):
    backup_dir.parent.mkdir(parents=True, exist_ok=True)
    backup_dir.write_text("not a directory")

    closed = _close_with_one_paid_order(manager, ledger, seed)

    assert closed.is_active is False
    assert manager.is_day_active() is False
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert any("backup not written" in r.getMessage() for r in warnings)


def test_snapshot_covers_only_the_closed_session(manager, ledger, seed, started, backup_dir):
    _close_with_one_paid_order(manager, ledger, seed)
    manager.start_session(seed["jane"])
    second = ledger.create_order(seed["jane"], 2, [line(seed["guinness"], 1)])
    ledger.mark_paid(second.order.id)
    closed = manager.close_session()

    [path] = list(backup_dir.glob(f"session_{closed.id}_*.json"))
    data = json.loads(path.read_text(encoding="utf-8"))
    assert [o["id"] for o in data["orders"]] == [second.order.id]
    assert data["total_revenue"] == 7.0
