import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from tillpoint.db.models import Product
from tillpoint.errors import ProductNotFound

logger = logging.getLogger(__name__)


class InventoryAccessor:
    def __init__(self, db: Session):
        self.db = db

    def available(self, product_id: int) -> int:
        quantity = self.db.scalar(select(Product.quantity).where(Product.id == product_id))
        if quantity is None:
            raise ProductNotFound(product_id)
        return int(quantity)

    def deduct(self, product_id: int, qty: int) -> None:
        self._adjust(product_id, -qty)

    def restore(self, product_id: int, qty: int) -> None:
        self._adjust(product_id, qty)

    def _adjust(self, product_id: int, delta: int) -> None:
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(quantity=Product.quantity + delta)
        )
        if result.rowcount == 0:
            raise ProductNotFound(product_id)
        logger.debug("stock adjusted product=%s delta=%+d", product_id, delta)
