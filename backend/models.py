import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DECIMAL,
    DateTime,
    ForeignKey,
    CheckConstraint,
    JSON,
)
from sqlalchemy.orm import relationship
from database import Base


class OrderStatus(str, enum.Enum):
    ORDER_CONFIRMED = "order_confirmed"
    PROCESSING = "processing"
    PACKED = "packed"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Everything that can still move; used by the dashboard "pending" figure
IN_FLIGHT_STATUSES = tuple(s for s in OrderStatus if s not in TERMINAL_STATUSES)


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    WALLET = "wallet"
    CARD = "card"
    UPI = "upi"


class Counter(Base):
    __tablename__ = "counters"

    name = Column(String(50), primary_key=True)
    sequence = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("sequence >= 0", name="check_counter_non_negative"),
    )


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    customer_code = Column(String(20), unique=True, nullable=False)
    name = Column(String(120), nullable=False)
    phone = Column(String(20), unique=True, nullable=False)
    email = Column(String(120), default="")
    address = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(30), unique=True, index=True, nullable=False)

    # weak back-reference; the customer_* columns are the snapshot taken at creation
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True, nullable=False)
    customer_code = Column(String(20))
    customer_name = Column(String(120), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    customer_email = Column(String(120), default="")
    customer_address = Column(String(255), nullable=False)

    subtotal = Column(DECIMAL(10, 2), nullable=False)
    tax = Column(DECIMAL(10, 2), nullable=False, default=0)
    shipping = Column(DECIMAL(10, 2), nullable=False, default=0)
    total_amount = Column(DECIMAL(10, 2), nullable=False)

    delivery_address = Column(JSON, nullable=False)
    payment_method = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.ORDER_CONFIRMED.value, index=True)

    order_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime)

    products = relationship(
        "OrderItem",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        back_populates="order",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="check_total_non_negative"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    item_id = Column(Integer, primary_key=True)
    order_pk = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    position = Column(Integer, nullable=False)
    product_id = Column(String(50))
    name = Column(String(160), nullable=False)
    price = Column(DECIMAL(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    images = Column(JSON, default=list)
    category = Column(String(80), default="General")

    order = relationship("Order", back_populates="products")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="check_item_quantity"),
        CheckConstraint("price >= 0", name="check_item_price"),
    )
