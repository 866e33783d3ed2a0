# services/order_stats.py
import math
from typing import Any, Dict, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import IN_FLIGHT_STATUSES, Order, OrderStatus
from services.customers import count_customers
from services.errors import InvalidPagination, InvalidStatus, StorageUnavailable
from services.order_lifecycle import to_money
from utils.log import get_logger

logger = get_logger("order_stats")

ALL_STATUSES = "all"


def admin_view(order: Order) -> Dict[str, Any]:
    return {
        "order_id": order.order_id,
        "customer_code": order.customer_code,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "customer_email": order.customer_email,
        "customer_address": order.customer_address,
        "products": [
            {
                "name": p.name,
                "price": p.price,
                "quantity": p.quantity,
                "total": to_money(p.price * p.quantity),
                "category": p.category,
            }
            for p in order.products
        ],
        "total_amount": order.total_amount,
        "status": order.status,
        "payment_method": order.payment_method,
        "order_date": order.order_date,
        "delivery_address": order.delivery_address,
    }


def list_orders_admin(
    db: Session,
    page: int = 1,
    page_size: int = 10,
    status: Optional[str] = ALL_STATUSES,
) -> Dict[str, Any]:
    if page < 1 or page_size < 1:
        raise InvalidPagination("page and page size must both be >= 1")

    query = db.query(Order)
    if status and status != ALL_STATUSES:
        try:
            status = OrderStatus(status).value
        except ValueError as e:
            raise InvalidStatus(f"Unknown status filter: {status!r}") from e
        query = query.filter(Order.status == status)

    try:
        total = query.count()
        orders = (
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        rows = [admin_view(o) for o in orders]
    except SQLAlchemyError as e:
        raise StorageUnavailable("Order store unavailable") from e

    total_pages = math.ceil(total / page_size)
    return {
        "orders": rows,
        "pagination": {
            "current_page": page,
            "total_pages": total_pages,
            "total_orders": total,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
        },
    }


def get_order_statistics(db: Session) -> Dict[str, Any]:
    """
    Dashboard figures. The order numbers come from one aggregate query using
    conditional sums, so the table is scanned once; nothing is cached.
    """
    delivered = Order.status == OrderStatus.DELIVERED.value
    in_flight = Order.status.in_([s.value for s in IN_FLIGHT_STATUSES])

    try:
        total_orders, delivered_orders, pending_orders, revenue = db.query(
            func.count(Order.id),
            func.coalesce(func.sum(case((delivered, 1), else_=0)), 0),
            func.coalesce(func.sum(case((in_flight, 1), else_=0)), 0),
            func.coalesce(func.sum(case((delivered, Order.total_amount), else_=0)), 0),
        ).one()
    except SQLAlchemyError as e:
        raise StorageUnavailable("Order store unavailable") from e

    customer_count = count_customers(db)

    total_revenue = to_money(revenue)
    if total_orders:
        avg_order_value = to_money(total_revenue / total_orders)
    else:
        avg_order_value = to_money(0)

    stats = {
        "total_orders": int(total_orders),
        "delivered_orders": int(delivered_orders),
        "pending_orders": int(pending_orders),
        "total_revenue": total_revenue,
        "avg_order_value": avg_order_value,
        "customer_count": int(customer_count),
    }
    logger.info("Order stats: %s", stats)
    return stats
