from __future__ import annotations

import logging
from decimal import Decimal

import pytest
from sqlalchemy import select

from tillpoint.db.models import Category, DaySession, Order, OrderItem, Product, Staff
from tillpoint.db.session import Till, make_engine
from tillpoint.schemas import OrderLine
from tillpoint.services.day_sessions import SessionManager
from tillpoint.services.orders import OrderLedger
from tillpoint.services.recovery import RecoveryReconciler
from tillpoint.services.reports import Reports
from tillpoint.services.snapshot import SnapshotExporter


@pytest.fixture(autouse=True)
def _debug_logging(caplog):
    caplog.set_level(logging.DEBUG, logger="tillpoint")


@pytest.fixture
def till():
    t = Till(make_engine("sqlite://"))
    t.create_all()
    yield t
    t.engine.dispose()


@pytest.fixture
def seed(till):
    """Two staff members and three beers; Guinness is nearly sold out."""
    with till.transaction() as db:
        beer = Category(name="Beer")
        john = Staff(name="John", pin="1234")
        jane = Staff(name="Jane")
        db.add_all([beer, john, jane])
        db.flush()
        heineken = Product(name="Heineken", price=Decimal("5.00"), quantity=100, category_id=beer.id, low_stock_threshold=10)
        corona = Product(name="Corona", price=Decimal("6.00"), quantity=50, category_id=beer.id, low_stock_threshold=5)
        guinness = Product(name="Guinness", price=Decimal("7.00"), quantity=3, category_id=beer.id, low_stock_threshold=5)
        db.add_all([heineken, corona, guinness])
        db.flush()
        return {
            "john": john.id,
            "jane": jane.id,
            "heineken": heineken.id,
            "corona": corona.id,
            "guinness": guinness.id,
        }


@pytest.fixture
def backup_dir(tmp_path):
    return tmp_path / "backups"


@pytest.fixture
def exporter(backup_dir):
    return SnapshotExporter(backup_dir)


@pytest.fixture
def manager(till, exporter):
    return SessionManager(till, exporter)


@pytest.fixture
def ledger(till):
    return OrderLedger(till)


@pytest.fixture
def reports(till):
    return Reports(till)


@pytest.fixture
def reconciler(till):
    return RecoveryReconciler(till)


@pytest.fixture
def started(manager, seed):
    return manager.start_session(seed["john"])


def line(product_id: int, quantity: int = 1) -> OrderLine:
    return OrderLine(product_id=product_id, quantity=quantity)


def stock(till: Till, product_id: int) -> int:
    with till.transaction() as db:
        return db.get(Product, product_id).quantity


def count_rows(till: Till, model) -> int:
    with till.transaction() as db:
        return len(db.scalars(select(model)).all())


def assert_ledger_consistent(till: Till) -> None:
    """Stock never negative, open totals match their lines, one active session at most."""
    with till.transaction() as db:
        for product in db.scalars(select(Product)):
            assert product.quantity >= 0, product.name
        for order in db.scalars(select(Order).where(Order.status == "open")):
            items = db.scalars(select(OrderItem).where(OrderItem.order_id == order.id)).all()
            assert order.total == sum((i.quantity * i.price_at_sale for i in items), Decimal("0"))
        active = db.scalars(select(DaySession).where(DaySession.is_active.is_(True))).all()
        assert len(active) <= 1
