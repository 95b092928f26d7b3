from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from tillpoint.db.models import DaySession, Order, OrderItem, money
from tillpoint.schemas import DaySessionRead, OrderItemRead, OrderRead, OrderWithItems


def order_view(order: Order) -> OrderWithItems:
    return OrderWithItems(
        order=OrderRead(
            id=order.id,
            staff_id=order.staff_id,
            staff_name=order.staff.name if order.staff else None,
            table_number=order.table_number,
            total=money(order.total),
            customer_name=order.customer_name,
            notes=order.notes,
            status=order.status,
            session_id=order.session_id,
            created_at=order.created_at,
        ),
        items=[
            OrderItemRead(
                id=item.id,
                order_id=item.order_id,
                product_id=item.product_id,
                product_name=item.product.name if item.product else None,
                quantity=item.quantity,
                price_at_sale=money(item.price_at_sale),
            )
            for item in order.items
        ],
    )


def load_order_tree(db: Session, *criteria, order_by=None) -> list[Order]:
    stmt = (
        select(Order)
        .where(*criteria)
        .options(
            selectinload(Order.staff),
            selectinload(Order.items).selectinload(OrderItem.product),
        )
    )
    if order_by is not None:
        stmt = stmt.order_by(*order_by)
    return list(db.scalars(stmt))


def session_view(session: DaySession) -> DaySessionRead:
    return DaySessionRead(
        id=session.id,
        date=session.date,
        started_by=session.started_by,
        started_by_name=session.staff.name if session.staff else None,
        started_at=session.started_at,
        closed_at=session.closed_at,
        is_active=session.is_active,
        total_revenue=money(session.total_revenue) if session.total_revenue is not None else None,
        total_orders=session.total_orders,
    )
