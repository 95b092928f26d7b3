"""Day-session lifecycle: Inactive --start--> Active --close--> Closed."""
import datetime as dt
import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from tillpoint.db.models import ORDER_OPEN, DaySession, Order, Staff, money
from tillpoint.db.session import Till
from tillpoint.errors import (
    EmptySession,
    NoActiveSession,
    OpenOrdersRemain,
    SessionAlreadyActive,
    StaffNotFound,
)
from tillpoint.schemas import DaySessionRead
from tillpoint.services.snapshot import SnapshotExporter
from tillpoint.services.views import session_view

logger = logging.getLogger(__name__)


def active_session(db: Session) -> Optional[DaySession]:
    return db.scalars(
        select(DaySession).where(DaySession.is_active.is_(True)).order_by(DaySession.id)
    ).first()


class SessionManager:
    def __init__(self, till: Till, exporter: SnapshotExporter):
        self.till = till
        self.exporter = exporter

    def start_session(self, staff_id: int) -> DaySessionRead:
        with self.till.transaction() as db:
            if active_session(db) is not None:
                raise SessionAlreadyActive()
            if db.get(Staff, staff_id) is None:
                raise StaffNotFound(staff_id)

            now = dt.datetime.now()
            session = DaySession(date=now.date(), started_by=staff_id, started_at=now, is_active=True)
            db.add(session)
            db.flush()

            logger.info("day session %s started by staff %s", session.id, staff_id)
            return session_view(session)

    def active_session(self) -> Optional[DaySessionRead]:
        with self.till.transaction() as db:
            session = active_session(db)
            return session_view(session) if session is not None else None

    def is_day_active(self) -> bool:
        return self.active_session() is not None

    def close_session(self) -> DaySessionRead:
        with self.till.transaction() as db:
            session = active_session(db)
            if session is None:
                raise NoActiveSession()

            # every linked order counts, whatever its status
            revenue, order_count = db.execute(
                select(func.coalesce(func.sum(Order.total), 0), func.count(Order.id))
                .where(Order.session_id == session.id)
            ).one()
            if order_count == 0:
                raise EmptySession()

            open_orders = db.scalar(
                select(func.count(Order.id))
                .where(Order.session_id == session.id, Order.status == ORDER_OPEN)
            )
            if open_orders:
                raise OpenOrdersRemain(open_orders)

            result = db.execute(
                update(DaySession)
                .where(DaySession.id == session.id, DaySession.is_active.is_(True))
                .values(
                    is_active=False,
                    closed_at=dt.datetime.now(),
                    total_revenue=money(revenue),
                    total_orders=order_count,
                )
            )
            if result.rowcount != 1:
                raise NoActiveSession(f"Day session {session.id} was not closed")

            db.flush()
            db.refresh(session)
            snapshot = self.exporter.gather(db, session)
            closed = session_view(session)

        logger.info(
            "day session %s closed revenue=%s orders=%s",
            closed.id, closed.total_revenue, closed.total_orders,
        )
        self.exporter.write(snapshot)
        return closed
