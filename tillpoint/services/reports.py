import datetime as dt
import logging
import uuid
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd
from sqlalchemy import case, select

from tillpoint.db.models import ORDER_OPEN, DaySession, Order, Product, money
from tillpoint.db.session import Till
from tillpoint.errors import NoActiveSession, OrderNotFound, SessionNotFound
from tillpoint.schemas import DaySessionRead, OrderWithItems, ProductRead, SessionSummary
from tillpoint.services.day_sessions import active_session
from tillpoint.services.views import load_order_tree, order_view, session_view

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ["product", "quantity", "revenue"]


class Reports:
    """Read-only views over the till. Each call is one till transaction."""

    def __init__(self, till: Till):
        self.till = till

    def get_order(self, order_id: int) -> OrderWithItems:
        with self.till.transaction() as db:
            orders = load_order_tree(db, Order.id == order_id)
            if not orders:
                raise OrderNotFound(order_id)
            return order_view(orders[0])

    def open_orders(self) -> list[OrderWithItems]:
        with self.till.transaction() as db:
            orders = load_order_tree(
                db, Order.status == ORDER_OPEN, order_by=(Order.table_number, Order.id)
            )
            return [order_view(o) for o in orders]

    def today_orders(self) -> list[OrderWithItems]:
        today = dt.date.today()
        return self.orders_by_date_range(today, today, open_first=True)

    def orders_by_date_range(
        self, start: dt.date, end: dt.date, open_first: bool = False
    ) -> list[OrderWithItems]:
        lower = dt.datetime.combine(start, dt.time.min)
        upper = dt.datetime.combine(end, dt.time.min) + dt.timedelta(days=1)
        order_by = (Order.created_at.desc(), Order.id.desc())
        if open_first:
            order_by = (case((Order.status == ORDER_OPEN, 0), else_=1),) + order_by
        with self.till.transaction() as db:
            orders = load_order_tree(
                db, Order.created_at >= lower, Order.created_at < upper, order_by=order_by
            )
            return [order_view(o) for o in orders]

    def session_summary(self, session_id: Optional[int] = None) -> SessionSummary:
        with self.till.transaction() as db:
            if session_id is None:
                session = active_session(db)
                if session is None:
                    raise NoActiveSession()
            else:
                session = db.get(DaySession, session_id)
                if session is None:
                    raise SessionNotFound(session_id)

            orders = load_order_tree(
                db, Order.session_id == session.id, order_by=(Order.created_at.desc(), Order.id.desc())
            )
            return SessionSummary(
                session_id=session.id,
                date=session.date,
                total_revenue=money(sum((o.total for o in orders), Decimal("0"))),
                total_orders=len(orders),
                orders=[order_view(o) for o in orders],
            )

    def sales_history(self, limit: int = 30) -> list[DaySessionRead]:
        with self.till.transaction() as db:
            sessions = db.scalars(
                select(DaySession)
                .where(DaySession.is_active.is_(False))
                .order_by(DaySession.closed_at.desc(), DaySession.id.desc())
                .limit(limit)
            )
            return [session_view(s) for s in sessions]

    def low_stock(self) -> list[ProductRead]:
        with self.till.transaction() as db:
            products = db.scalars(
                select(Product)
                .where(Product.quantity <= Product.low_stock_threshold)
                .order_by(Product.quantity, Product.name)
            )
            return [ProductRead.model_validate(p) for p in products]


def day_report_frame(summary: SessionSummary) -> pd.DataFrame:
    """Units and revenue per product across a session's orders, best sellers first."""
    rows = [
        {
            "product": item.product_name or "Unknown",
            "quantity": item.quantity,
            "revenue": float(item.price_at_sale * item.quantity),
        }
        for entry in summary.orders
        for item in entry.items
    ]
    df = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    if df.empty:
        return df
    return (
        df.groupby("product", as_index=False)[["quantity", "revenue"]]
        .sum()
        .sort_values("revenue", ascending=False)
        .reset_index(drop=True)
    )


def export_day_report(summary: SessionSummary, report_dir: str | Path) -> Path:
    report_dir = Path(report_dir)
    report_dir.mkdir(parents=True, exist_ok=True)
    df = day_report_frame(summary)
    total = pd.DataFrame(
        [{"product": "TOTAL", "quantity": int(df["quantity"].sum()), "revenue": float(summary.total_revenue)}],
        columns=REPORT_COLUMNS,
    )
    path = report_dir / f"session_{summary.session_id}_{uuid.uuid4().hex}.csv"
    frames = [df, total] if not df.empty else [total]
    pd.concat(frames, ignore_index=True).to_csv(path, index=False, sep=";")
    logger.info("day report for session %s written to %s", summary.session_id, path)
    return path
