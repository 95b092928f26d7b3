from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pandas as pd
import pytest

from conftest import line
from tillpoint.db.models import Order
from tillpoint.errors import NoActiveSession, OrderNotFound, SessionNotFound
from tillpoint.services.reports import day_report_frame, export_day_report


def test_get_order(ledger, reports, seed, started):
    created = ledger.create_order(seed["john"], 7, [line(seed["corona"], 2)])

    fetched = reports.get_order(created.order.id)
    assert fetched == created

    with pytest.raises(OrderNotFound):
        reports.get_order(12345)


def test_open_orders_sorted_by_table(ledger, reports, seed, started):
    t9 = ledger.create_order(seed["john"], 9, [line(seed["heineken"])])
    t2 = ledger.create_order(seed["john"], 2, [line(seed["heineken"])])
    paid = ledger.create_order(seed["john"], 1, [line(seed["heineken"])])
    ledger.mark_paid(paid.order.id)

    assert [o.order.id for o in reports.open_orders()] == [t2.order.id, t9.order.id]


def test_today_orders_lists_open_first(ledger, reports, seed, started):
    first = ledger.create_order(seed["john"], 1, [line(seed["heineken"])])
    second = ledger.create_order(seed["john"], 2, [line(seed["heineken"])])
    ledger.mark_paid(second.order.id)

    today = reports.today_orders()
    assert [o.order.status for o in today] == ["open", "paid"]
    assert [o.order.id for o in today] == [first.order.id, second.order.id]


def test_orders_by_date_range_is_inclusive(ledger, reports, till, seed, started):
    created = ledger.create_order(seed["john"], 1, [line(seed["heineken"])])
    old = ledger.create_order(seed["john"], 2, [line(seed["heineken"])])
    with till.transaction() as db:
        db.get(Order, old.order.id).created_at = dt.datetime(2024, 1, 31, 23, 59)

    in_january = reports.orders_by_date_range(dt.date(2024, 1, 1), dt.date(2024, 1, 31))
    assert [o.order.id for o in in_january] == [old.order.id]

    today = dt.date.today()
    assert [o.order.id for o in reports.orders_by_date_range(today, today)] == [created.order.id]
    assert reports.orders_by_date_range(dt.date(2024, 2, 1), dt.date(2024, 2, 1)) == []


def test_session_summary_for_active_session(ledger, reports, seed, started):
    a = ledger.create_order(seed["john"], 1, [line(seed["heineken"], 2)])
    b = ledger.create_order(seed["jane"], 2, [line(seed["corona"], 1)])
    ledger.mark_paid(a.order.id)

    summary = reports.session_summary()
    assert summary.session_id == started.id
    assert summary.total_orders == 2
    assert summary.total_revenue == Decimal("16.00")
    assert {o.order.id for o in summary.orders} == {a.order.id, b.order.id}


def test_session_summary_without_session(reports, seed):
    with pytest.raises(NoActiveSession):
        reports.session_summary()
    with pytest.raises(SessionNotFound):
        reports.session_summary(99)


def test_session_summary_of_closed_session(manager, ledger, reports, seed, started):
    o = ledger.create_order(seed["john"], 1, [line(seed["guinness"], 2)])
    ledger.mark_paid(o.order.id)
    manager.close_session()

    summary = reports.session_summary(started.id)
    assert summary.total_revenue == Decimal("14.00")
    assert summary.total_orders == 1


def test_sales_history_newest_first(manager, ledger, reports, seed, started):
    ids = []
    for staff in ("john", "jane"):
        if not manager.is_day_active():
            manager.start_session(seed[staff])
        o = ledger.create_order(seed[staff], 1, [line(seed["heineken"])])
        ledger.mark_paid(o.order.id)
        ids.append(manager.close_session().id)
    manager.start_session(seed["john"])

    history = reports.sales_history()
    assert [s.id for s in history] == list(reversed(ids))
    assert all(not s.is_active for s in history)
    assert [s.id for s in reports.sales_history(limit=1)] == [ids[-1]]


def test_low_stock(ledger, reports, seed, started):
    assert [p.name for p in reports.low_stock()] == ["Guinness"]

    ledger.create_order(seed["john"], 1, [line(seed["corona"], 45)])
    low = reports.low_stock()
    assert [(p.name, p.quantity) for p in low] == [("Guinness", 3), ("Corona", 5)]


def test_day_report_frame_groups_by_product(ledger, reports, seed, started):
    ledger.create_order(seed["john"], 1, [line(seed["heineken"], 2), line(seed["corona"], 1)])
    ledger.create_order(seed["jane"], 2, [line(seed["heineken"], 3)])

    df = day_report_frame(reports.session_summary())
    assert list(df["product"]) == ["Heineken", "Corona"]
    assert list(df["quantity"]) == [5, 1]
    assert list(df["revenue"]) == [25.0, 6.0]


def test_export_day_report_writes_csv_with_total(ledger, reports, seed, started, tmp_path):
    ledger.create_order(seed["john"], 1, [line(seed["heineken"], 2), line(seed["guinness"], 1)])

    path = export_day_report(reports.session_summary(), tmp_path / "reports")
    assert path.exists()

    df = pd.read_csv(path, sep=";")
    assert list(df.columns) == ["product", "quantity", "revenue"]
    assert df.iloc[-1]["product"] == "TOTAL"
    assert df.iloc[-1]["quantity"] == 3
    assert df.iloc[-1]["revenue"] == 17.0


def test_today_orders_open_tabs_before_newer_paid_ones(ledger, reports, seed, started):
    old_open = ledger.create_order(seed["john"], 1, [line(seed["heineken"])])
    paid = ledger.create_order(seed["john"], 2, [line(seed["heineken"])])
    new_open = ledger.create_order(seed["john"], 3, [line(seed["heineken"])])
    ledger.mark_paid(paid.order.id)

    today = reports.today_orders()
    assert [o.order.id for o in today] == [new_open.order.id, old_open.order.id, paid.order.id]

    # the plain range read stays newest first
    today_range = reports.orders_by_date_range(dt.date.today(), dt.date.today())
    assert [o.order.id for o in today_range] == [new_open.order.id, paid.order.id, old_open.order.id]
