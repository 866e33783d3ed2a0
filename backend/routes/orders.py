from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field
from database import get_db
from models import OrderStatus
from services.errors import (
    CustomerNotFound,
    InvalidLineItem,
    InvalidPagination,
    InvalidPaymentMethod,
    InvalidStatus,
    InvalidTransition,
    OrderNotFound,
    OrderServiceError,
    PersistenceFailed,
    StorageUnavailable,
)
from services.order_lifecycle import create_order, list_orders_for_customer, set_order_status
from services.order_stats import ALL_STATUSES, get_order_statistics, list_orders_admin


router = APIRouter(prefix="/orders", tags=["Orders"])


HTTP_STATUS = {
    CustomerNotFound: 404,
    OrderNotFound: 404,
    InvalidLineItem: 400,
    InvalidPaymentMethod: 400,
    InvalidStatus: 400,
    InvalidPagination: 400,
    InvalidTransition: 409,
    StorageUnavailable: 503,
    PersistenceFailed: 500,
}


def to_http(e: OrderServiceError) -> HTTPException:
    return HTTPException(status_code=HTTP_STATUS.get(type(e), 500), detail=str(e))


# ================================
# Pydantic Models
# ================================
class OrderItemIn(BaseModel):
    product_id: Optional[str] = None
    name: str
    price: Decimal
    quantity: int
    images: List[str] = Field(default_factory=list)
    category: str = "General"


class DeliveryAddressIn(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: Optional[str] = None
    pincode: str
    country: str = "India"


class OrderCreate(BaseModel):
    customer_id: int
    products: List[OrderItemIn]
    delivery_address: DeliveryAddressIn
    payment_method: Optional[str] = None
    use_wallet: bool = False


class StatusUpdate(BaseModel):
    status: str


# ================================
# CREATE ORDER
# ================================
@router.post("/create", status_code=201)
def create(data: OrderCreate, db: Session = Depends(get_db)):
    try:
        order = create_order(
            db,
            customer_id=data.customer_id,
            items=[item.model_dump() for item in data.products],
            delivery_address=data.delivery_address.model_dump(),
            payment_method=data.payment_method,
            use_wallet=data.use_wallet,
        )
    except OrderServiceError as e:
        raise to_http(e)

    return {
        "success": True,
        "message": "Order placed successfully",
        "data": {
            "order_id": order.order_id,
            "total_amount": order.total_amount,
            "status": order.status,
            "order_date": order.order_date,
        },
    }


# ================================
# CUSTOMER ORDERS
# ================================
@router.get("/customer/{customer_id}")
def customer_orders(customer_id: int, db: Session = Depends(get_db)):
    try:
        orders = list_orders_for_customer(db, customer_id)
    except OrderServiceError as e:
        raise to_http(e)
    return {"success": True, "data": orders}


# ================================
# Order Status Endpoint
# ================================
@router.put("/update-status/{order_id}")
def update_status(order_id: str, payload: StatusUpdate, db: Session = Depends(get_db)):
    try:
        order = set_order_status(db, order_id, payload.status)
    except OrderServiceError as e:
        raise to_http(e)

    return {
        "success": True,
        "message": "Order status updated successfully",
        "data": {"order_id": order.order_id, "status": order.status},
    }


# ================================
# ADMIN
# ================================
@router.get("/admin/orders")
def admin_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    status: Optional[str] = Query(ALL_STATUSES),
    db: Session = Depends(get_db),
):
    try:
        result = list_orders_admin(db, page=page, page_size=limit, status=status)
    except OrderServiceError as e:
        raise to_http(e)

    return {"success": True, "data": result["orders"], "pagination": result["pagination"]}


@router.get("/admin/order-stats")
def admin_order_stats(db: Session = Depends(get_db)):
    try:
        stats = get_order_statistics(db)
    except OrderServiceError as e:
        raise to_http(e)
    return {"success": True, "data": stats}


@router.get("/test")
def test_route():
    return {
        "success": True,
        "message": "Order routes are working!",
        "statuses": [s.value for s in OrderStatus],
        "timestamp": datetime.now().isoformat(),
    }
