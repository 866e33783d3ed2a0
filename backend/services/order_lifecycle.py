# services/order_lifecycle.py
"""
Order creation, status transitions and the customer-facing order list.

Money is Decimal all the way through: line totals, tax and shipping are
computed on exact decimals and rounded to cents once, here.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Order, OrderItem, OrderStatus, PaymentMethod
from services.customers import resolve_customer
from services.errors import (
    InvalidLineItem,
    InvalidPaymentMethod,
    InvalidStatus,
    InvalidTransition,
    OrderNotFound,
    PersistenceFailed,
    StorageUnavailable,
)
from services.sequence import ORDER_COUNTER, next_value, render_order_id
from utils.log import get_logger

logger = get_logger("order_lifecycle")

CENT = Decimal("0.01")
TAX_RATE = Decimal("0.08")
FREE_SHIPPING_THRESHOLD = Decimal("499")
SHIPPING_FEE = Decimal("5.99")
DEFAULT_CATEGORY = "General"
DEFAULT_COUNTRY = "India"

Totals = Tuple[Decimal, Decimal, Decimal, Decimal]


def to_money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _field(item: Any, key: str, default=None):
    if isinstance(item, dict):
        return item.get(key, default)
    return getattr(item, key, default)


def _checked_line(index: int, item: Any) -> Tuple[Decimal, int]:
    quantity = _field(item, "quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidLineItem(f"Item {index}: quantity must be a whole number >= 1")

    try:
        price = Decimal(str(_field(item, "price")))
    except (InvalidOperation, ValueError) as e:
        raise InvalidLineItem(f"Item {index}: price is not a number") from e
    if not price.is_finite() or price < 0:
        raise InvalidLineItem(f"Item {index}: price must be >= 0")
    if price != price.quantize(CENT):
        raise InvalidLineItem(f"Item {index}: price has fractions of a cent")

    return price, quantity


def shipping_for(subtotal: Decimal) -> Decimal:
    # strictly greater: a subtotal of exactly 499 still pays the fee
    return Decimal("0.00") if subtotal > FREE_SHIPPING_THRESHOLD else SHIPPING_FEE


def compute_totals(items: Iterable[Any]) -> Totals:
    """Return (subtotal, tax, shipping, total) for the given line items."""
    items = list(items or [])
    if not items:
        raise InvalidLineItem("Order must contain at least one item")

    subtotal = Decimal("0")
    for index, item in enumerate(items):
        price, quantity = _checked_line(index, item)
        subtotal += price * quantity

    subtotal = to_money(subtotal)
    tax = to_money(subtotal * TAX_RATE)
    shipping = shipping_for(subtotal)
    return subtotal, tax, shipping, subtotal + tax + shipping


def resolve_payment_method(payment_method: Optional[str], use_wallet: bool) -> str:
    if use_wallet:
        return PaymentMethod.WALLET.value
    try:
        return PaymentMethod(payment_method).value
    except ValueError as e:
        raise InvalidPaymentMethod(f"Unsupported payment method: {payment_method!r}") from e


def _delivery_snapshot(address: Any) -> Dict[str, Any]:
    if address is None:
        address = {}
    elif not isinstance(address, dict):
        address = address.model_dump()
    snapshot = dict(address)
    if not snapshot.get("country"):
        snapshot["country"] = DEFAULT_COUNTRY
    return snapshot


def _order_item(position: int, item: Any) -> OrderItem:
    return OrderItem(
        position=position,
        product_id=_field(item, "product_id"),
        name=_field(item, "name") or "",
        price=_checked_line(position, item)[0],
        quantity=_field(item, "quantity"),
        images=list(_field(item, "images") or []),
        category=_field(item, "category") or DEFAULT_CATEGORY,
    )


# ================================
# CREATE
# ================================
def create_order(
    db: Session,
    customer_id: int,
    items: List[Any],
    delivery_address: Any,
    payment_method: Optional[str],
    use_wallet: bool = False,
) -> Order:
    subtotal, tax, shipping, total = compute_totals(items)
    customer = resolve_customer(db, customer_id)
    method = resolve_payment_method(payment_method, use_wallet)
    snapshot = {
        "customer_id": customer.id,
        "customer_code": customer.customer_code,
        "customer_name": customer.name,
        "customer_phone": customer.phone,
        "customer_email": customer.email or "",
        "customer_address": customer.address,
    }

    # Hand the request connection back to the pool; the counter takes its own
    # and a request must never hold two at once
    db.rollback()

    # Allocated and committed on its own; if the insert below fails the
    # number is burnt, never handed out again
    order_id = render_order_id(next_value(db.get_bind(), ORDER_COUNTER))

    now = datetime.now()
    order = Order(
        order_id=order_id,
        **snapshot,
        products=[_order_item(i, item) for i, item in enumerate(items)],
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        total_amount=total,
        delivery_address=_delivery_snapshot(delivery_address),
        payment_method=method,
        status=OrderStatus.ORDER_CONFIRMED.value,
        order_date=now,
        created_at=now,
        updated_at=now,
    )

    db.add(order)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Persisting order %s failed; number is consumed", order_id)
        raise PersistenceFailed(f"Failed to persist order {order_id}") from e

    db.refresh(order)
    logger.info(
        "Order created: %s customer=%s total=%s products=%d",
        order.order_id, snapshot["customer_name"], order.total_amount, len(items),
    )
    return order


# ================================
# STATUS
# ================================
def parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as e:
        raise InvalidStatus(f"Unknown order status: {value!r}") from e


def check_transition(current: Union[str, OrderStatus], target: OrderStatus) -> None:
    # Only terminality is enforced; any other move (backward included) is allowed
    current = parse_status(current)
    if current.is_terminal:
        raise InvalidTransition(
            f"Order is {current.value}; cannot move to {target.value}"
        )


def set_order_status(db: Session, order_id: str, new_status: Union[str, OrderStatus]) -> Order:
    target = parse_status(new_status)

    try:
        order = db.query(Order).filter(Order.order_id == order_id).first()
    except SQLAlchemyError as e:
        raise StorageUnavailable("Order store unavailable") from e
    if not order:
        raise OrderNotFound(f"Order {order_id} not found")

    check_transition(order.status, target)

    order.status = target.value
    order.updated_at = datetime.now()
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Status update for %s failed", order_id)
        raise PersistenceFailed(f"Failed to update order {order_id}") from e

    db.refresh(order)
    logger.info("Order %s status updated to %s", order.order_id, order.status)
    return order


# ================================
# CUSTOMER VIEW
# ================================
def item_view(item: OrderItem) -> Dict[str, Any]:
    return {
        "product_id": item.product_id,
        "name": item.name,
        "price": item.price,
        "quantity": item.quantity,
        "images": item.images or [],
        "category": item.category,
    }


def customer_view(order: Order) -> Dict[str, Any]:
    return {
        "order_id": order.order_id,
        "status": order.status,
        "total_amount": order.total_amount,
        "products": [item_view(i) for i in order.products],
        "delivery_address": order.delivery_address,
        "payment_method": order.payment_method,
        "order_date": order.order_date,
        "created_at": order.created_at,
    }


def list_orders_for_customer(db: Session, customer_id: int) -> List[Dict[str, Any]]:
    try:
        orders = (
            db.query(Order)
            .filter(Order.customer_id == customer_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )
        out = [customer_view(o) for o in orders]
    except SQLAlchemyError as e:
        raise StorageUnavailable("Order store unavailable") from e

    logger.info("Found %d orders for customer %s", len(out), customer_id)
    return out
