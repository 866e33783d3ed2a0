from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from pydantic import BaseModel

from database import get_db
from services.customers import register_customer, resolve_customer, update_customer
from services.errors import CustomerExists, CustomerNotFound, OrderServiceError, StorageUnavailable

router = APIRouter(prefix="/customers", tags=["Customers"])


def customer_out(c):
    return {
        "id": c.id,
        "customer_code": c.customer_code,
        "name": c.name,
        "phone": c.phone,
        "email": c.email,
        "address": c.address,
    }


def to_http(e: OrderServiceError) -> HTTPException:
    if isinstance(e, CustomerNotFound):
        return HTTPException(404, str(e))
    if isinstance(e, CustomerExists):
        return HTTPException(409, str(e))
    if isinstance(e, StorageUnavailable):
        return HTTPException(503, str(e))
    return HTTPException(500, str(e))


class CustomerCreate(BaseModel):
    name: str
    phone: str
    address: str
    email: Optional[str] = ""


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


# ------------------------------
# CREATE CUSTOMER
# ------------------------------
@router.post("/create", status_code=201)
def create_customer(data: CustomerCreate, db: Session = Depends(get_db)):
    try:
        customer = register_customer(db, data.name, data.phone, data.address, data.email)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except OrderServiceError as e:
        raise to_http(e)
    return {"success": True, "data": customer_out(customer)}


@router.get("/{customer_id}")
def get_customer(customer_id: int, db: Session = Depends(get_db)):
    try:
        customer = resolve_customer(db, customer_id)
    except OrderServiceError as e:
        raise to_http(e)
    return {"success": True, "data": customer_out(customer)}


@router.put("/{customer_id}")
def edit_customer(customer_id: int, data: CustomerUpdate, db: Session = Depends(get_db)):
    try:
        customer = update_customer(db, customer_id, **data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(400, str(e))
    except OrderServiceError as e:
        raise to_http(e)
    return {"success": True, "data": customer_out(customer)}
