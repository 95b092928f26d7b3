import datetime as dt
import logging
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from tillpoint.db.models import ORDER_OPEN, ORDER_PAID, Order, OrderItem, Product, Staff, money
from tillpoint.db.session import Till
from tillpoint.errors import (
    DayNotStarted,
    InsufficientStock,
    InvalidRequest,
    NotFoundOrAlreadyPaid,
    OrderClosed,
    OrderItemNotFound,
    OrderNotFound,
    ProductNotFound,
    StaffNotFound,
)
from tillpoint.schemas import OrderLine, OrderWithItems
from tillpoint.services.day_sessions import active_session
from tillpoint.services.inventory import InventoryAccessor
from tillpoint.services.views import load_order_tree, order_view

logger = logging.getLogger(__name__)

# (product_id, quantity, unit price captured now)
PricedLine = tuple[int, int, Decimal]


class OrderLedger:
    def __init__(self, till: Till):
        self.till = till

    def create_order(
        self,
        staff_id: int,
        table_number: int,
        items: Iterable[OrderLine],
        customer_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> OrderWithItems:
        with self.till.transaction() as db:
            session = active_session(db)
            if session is None:
                raise DayNotStarted()
            if db.get(Staff, staff_id) is None:
                raise StaffNotFound(staff_id)

            inventory = InventoryAccessor(db)
            priced = self._price_lines(db, inventory, items)
            order = Order(
                staff_id=staff_id,
                table_number=table_number,
                total=self._subtotal(priced),
                customer_name=customer_name,
                notes=notes,
                status=ORDER_OPEN,
                session_id=session.id,
                created_at=dt.datetime.now(),
            )
            db.add(order)
            db.flush()
            self._append_lines(db, inventory, order.id, priced)

            logger.info(
                "order %s created table=%s total=%s session=%s",
                order.id, table_number, order.total, session.id,
            )
            return self._fresh_view(db, order.id)

    def add_items(self, order_id: int, items: Iterable[OrderLine]) -> OrderWithItems:
        with self.till.transaction() as db:
            self._open_order(db, order_id)
            inventory = InventoryAccessor(db)
            priced = self._price_lines(db, inventory, items)
            subtotal = self._subtotal(priced)
            self._append_lines(db, inventory, order_id, priced)
            self._shift_total(db, order_id, subtotal)

            logger.info("order %s extended by %s line(s) +%s", order_id, len(priced), subtotal)
            return self._fresh_view(db, order_id)

    def mark_paid(self, order_id: int) -> OrderWithItems:
        with self.till.transaction() as db:
            # check-and-set on status
            result = db.execute(
                update(Order)
                .where(Order.id == order_id, Order.status == ORDER_OPEN)
                .values(status=ORDER_PAID)
            )
            if result.rowcount == 0:
                raise NotFoundOrAlreadyPaid(order_id)

            logger.info("order %s paid", order_id)
            return self._fresh_view(db, order_id)

    def decrease_item_quantity(self, item_id: int) -> Optional[OrderWithItems]:
        """
        Take one unit off an order line and put it back in stock.

        The line is removed when its last unit goes. Returns the updated
        order, or None when the order lost its last line and was deleted.
        """
        with self.till.transaction() as db:
            item = self._item(db, item_id)
            order = self._open_order(db, item.order_id)
            order_id, product_id, price = order.id, item.product_id, item.price_at_sale

            if item.quantity <= 1:
                db.delete(item)
            else:
                db.execute(
                    update(OrderItem)
                    .where(OrderItem.id == item_id)
                    .values(quantity=OrderItem.quantity - 1)
                )
            InventoryAccessor(db).restore(product_id, 1)
            self._shift_total(db, order_id, -price)
            db.flush()

            remaining = db.scalar(
                select(func.count(OrderItem.id)).where(OrderItem.order_id == order_id)
            )
            if remaining == 0:
                db.delete(order)
                logger.info("order %s deleted after its last item was removed", order_id)
                return None
            return self._fresh_view(db, order_id)

    def increase_item_quantity(self, item_id: int) -> OrderWithItems:
        with self.till.transaction() as db:
            item = self._item(db, item_id)
            order = self._open_order(db, item.order_id)

            inventory = InventoryAccessor(db)
            available = inventory.available(item.product_id)
            if available < 1:
                name = item.product.name if item.product else str(item.product_id)
                raise InsufficientStock(name, 1, available)

            db.execute(
                update(OrderItem)
                .where(OrderItem.id == item_id)
                .values(quantity=OrderItem.quantity + 1)
            )
            inventory.deduct(item.product_id, 1)
            self._shift_total(db, order.id, item.price_at_sale)
            return self._fresh_view(db, order.id)

    def update_order_notes(
        self, order_id: int, customer_name: Optional[str], notes: Optional[str]
    ) -> OrderWithItems:
        with self.till.transaction() as db:
            order = db.get(Order, order_id)
            if order is None:
                raise OrderNotFound(order_id)
            order.customer_name = customer_name
            order.notes = notes
            return self._fresh_view(db, order_id)

    # helpers

    @staticmethod
    def _price_lines(
        db: Session, inventory: InventoryAccessor, items: Iterable[OrderLine]
    ) -> list[PricedLine]:
        lines = list(items)
        if not lines:
            raise InvalidRequest("An order needs at least one item")

        # stock is checked against everything this request asks of a product
        requested: dict[int, int] = {}
        priced: list[PricedLine] = []
        for line in lines:
            if line.quantity < 1:
                raise InvalidRequest(f"Quantity must be at least 1, got {line.quantity}")
            product = db.get(Product, line.product_id)
            if product is None:
                raise ProductNotFound(line.product_id)
            available = inventory.available(product.id)
            requested[product.id] = requested.get(product.id, 0) + line.quantity
            if available < requested[product.id]:
                raise InsufficientStock(product.name, requested[product.id], available)
            priced.append((product.id, line.quantity, money(product.price)))
        return priced

    @staticmethod
    def _subtotal(priced: list[PricedLine]) -> Decimal:
        return money(sum((price * qty for _, qty, price in priced), Decimal("0")))

    @staticmethod
    def _append_lines(
        db: Session, inventory: InventoryAccessor, order_id: int, priced: list[PricedLine]
    ) -> None:
        for product_id, qty, price in priced:
            db.add(OrderItem(order_id=order_id, product_id=product_id, quantity=qty, price_at_sale=price))
            inventory.deduct(product_id, qty)
        db.flush()

    @staticmethod
    def _shift_total(db: Session, order_id: int, delta: Decimal) -> None:
        db.execute(
            update(Order).where(Order.id == order_id).values(total=Order.total + delta)
        )

    @staticmethod
    def _item(db: Session, item_id: int) -> OrderItem:
        item = db.get(OrderItem, item_id)
        if item is None:
            raise OrderItemNotFound(item_id)
        return item

    @staticmethod
    def _open_order(db: Session, order_id: int) -> Order:
        order = db.get(Order, order_id)
        if order is None:
            raise OrderNotFound(order_id)
        if order.status != ORDER_OPEN:
            raise OrderClosed(order_id)
        return order

    @staticmethod
    def _fresh_view(db: Session, order_id: int) -> OrderWithItems:
        db.flush()
        db.expire_all()
        orders = load_order_tree(db, Order.id == order_id)
        if not orders:
            raise OrderNotFound(order_id)
        return order_view(orders[0])
