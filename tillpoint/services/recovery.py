"""Back-fill closed day sessions for orders recorded before session tracking."""
import datetime as dt
import logging
from typing import Optional

from sqlalchemy import select, update

from tillpoint.db.models import DaySession, Order, Staff, money
from tillpoint.db.session import Till
from tillpoint.errors import NoOrphanedOrders, SessionAlreadyClosedForDate, StaffNotFound
from tillpoint.schemas import DaySessionRead
from tillpoint.services.views import session_view

logger = logging.getLogger(__name__)


class RecoveryReconciler:
    def __init__(self, till: Till):
        self.till = till

    def create_closed_session_for_date(
        self, day: dt.date, staff_id: Optional[int] = None
    ) -> DaySessionRead:
        """
        Link every session-less order created on ``day`` to a new, already
        closed session carrying their frozen totals.

        The session is attributed to ``staff_id`` when given, otherwise to
        the staff member who took the earliest of those orders.
        """
        day_start = dt.datetime.combine(day, dt.time.min)
        day_end = day_start + dt.timedelta(days=1)

        with self.till.transaction() as db:
            already_closed = db.scalar(
                select(DaySession.id).where(
                    DaySession.date == day, DaySession.is_active.is_(False)
                )
            )
            if already_closed is not None:
                raise SessionAlreadyClosedForDate(day)

            orphans = list(db.scalars(
                select(Order)
                .where(
                    Order.session_id.is_(None),
                    Order.created_at >= day_start,
                    Order.created_at < day_end,
                )
                .order_by(Order.created_at, Order.id)
            ))
            if not orphans:
                raise NoOrphanedOrders(day)

            started_by = staff_id if staff_id is not None else orphans[0].staff_id
            if db.get(Staff, started_by) is None:
                raise StaffNotFound(started_by)

            session = DaySession(
                date=day,
                started_by=started_by,
                started_at=day_start,
                is_active=False,
                closed_at=dt.datetime.combine(day, dt.time(23, 59, 59)),
                total_revenue=money(sum(o.total for o in orphans)),
                total_orders=len(orphans),
            )
            db.add(session)
            db.flush()

            db.execute(
                update(Order)
                .where(Order.id.in_([o.id for o in orphans]))
                .values(session_id=session.id)
            )

            logger.info(
                "recovered session %s for %s: %s order(s) revenue=%s",
                session.id, day, session.total_orders, session.total_revenue,
            )
            return session_view(session)
