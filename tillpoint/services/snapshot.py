import datetime as dt
import logging
from pathlib import Path

from sqlalchemy.orm import Session

from tillpoint.db.models import DaySession, Order
from tillpoint.schemas import SessionSnapshot, SnapshotItem, SnapshotOrder
from tillpoint.services.views import load_order_tree

logger = logging.getLogger(__name__)


class SnapshotExporter:
    def __init__(self, backup_dir: str | Path):
        self.backup_dir = Path(backup_dir)

    def gather(self, db: Session, session: DaySession) -> SessionSnapshot:
        orders = load_order_tree(
            db, Order.session_id == session.id, order_by=(Order.created_at, Order.id)
        )
        return SessionSnapshot(
            session_id=session.id,
            date=session.date,
            session_started_at=session.started_at,
            closed_at=session.closed_at,
            total_revenue=float(session.total_revenue or 0),
            total_orders=session.total_orders or 0,
            orders=[
                SnapshotOrder(
                    id=o.id,
                    staff_id=o.staff_id,
                    staff_name=o.staff.name if o.staff else None,
                    table_number=o.table_number,
                    total=float(o.total),
                    customer_name=o.customer_name,
                    notes=o.notes,
                    status=o.status,
                    created_at=o.created_at,
                    items=[
                        SnapshotItem(
                            id=i.id,
                            product_id=i.product_id,
                            product_name=i.product.name if i.product else None,
                            quantity=i.quantity,
                            price_at_sale=float(i.price_at_sale),
                        )
                        for i in o.items
                    ],
                )
                for o in orders
            ],
        )

    def write(self, snapshot: SessionSnapshot) -> Path | None:
        stamp = (snapshot.closed_at or dt.datetime.now()).strftime("%Y%m%d_%H%M%S_%f")
        path = self.backup_dir / f"session_{snapshot.session_id}_{stamp}.json"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            payload = snapshot.model_dump_json(indent=2)
            # "x" refuses to replace an existing backup
            with path.open("x", encoding="utf-8") as fh:
                fh.write(payload)
        except (OSError, ValueError) as e:
            logger.warning("session %s backup not written to %s: %s", snapshot.session_id, path, e)
            return None
        logger.info("session %s backup written to %s", snapshot.session_id, path)
        return path
