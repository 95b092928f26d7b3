import datetime as dt
from decimal import Decimal

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, Numeric, Boolean, Date, DateTime, ForeignKey, Index

# Currency columns: two decimal places, handled as Decimal in Python
Money = Numeric(10, 2)
CENTS = Decimal("0.01")

ORDER_OPEN = "open"
ORDER_PAID = "paid"


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS)


class Base(DeclarativeBase):
    pass


class Category(Base):
    __tablename__ = "categories"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)


class Staff(Base):
    __tablename__ = "staff"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), unique=True)
    pin: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.now)


class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    price: Mapped[Decimal] = mapped_column(Money)
    quantity: Mapped[int] = mapped_column(Integer, default=0)  # on hand, never negative
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), nullable=True)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, default=5)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.now)

    category: Mapped[Category | None] = relationship()


class DaySession(Base):
    __tablename__ = "day_sessions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)  # not unique: several sessions per day
    started_by: Mapped[int] = mapped_column(ForeignKey("staff.id"))
    started_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.now)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    closed_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    # frozen at close
    total_revenue: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    total_orders: Mapped[int | None] = mapped_column(Integer, nullable=True)

    staff: Mapped[Staff] = relationship()


class Order(Base):
    __tablename__ = "orders"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    staff_id: Mapped[int] = mapped_column(ForeignKey("staff.id"))
    table_number: Mapped[int] = mapped_column(Integer, default=1)
    total: Mapped[Decimal] = mapped_column(Money)
    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(10), default=ORDER_OPEN)
    # null only for orders recorded before session tracking
    session_id: Mapped[int | None] = mapped_column(ForeignKey("day_sessions.id"), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.now)

    staff: Mapped[Staff] = relationship()
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )

    __table_args__ = (
        Index("idx_orders_session_id", "session_id"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"))
    quantity: Mapped[int] = mapped_column(Integer)
    price_at_sale: Mapped[Decimal] = mapped_column(Money)  # captured once, never recomputed

    order: Mapped[Order] = relationship(back_populates="items")
    product: Mapped[Product] = relationship()
