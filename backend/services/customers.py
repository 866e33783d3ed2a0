# services/customers.py
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models import Customer
from services.errors import CustomerExists, CustomerNotFound, PersistenceFailed, StorageUnavailable
from services.sequence import CUSTOMER_COUNTER, next_value, render_customer_code
from utils.log import get_logger

logger = get_logger("customers")

EDITABLE_FIELDS = ("name", "phone", "email", "address")


def resolve_customer(db: Session, customer_id: int) -> Customer:
    try:
        customer = db.get(Customer, customer_id)
    except SQLAlchemyError as e:
        raise StorageUnavailable("Customer directory unavailable") from e
    if not customer:
        raise CustomerNotFound(f"Customer {customer_id} not found")
    return customer


def count_customers(db: Session) -> int:
    try:
        return db.query(func.count(Customer.id)).scalar() or 0
    except SQLAlchemyError as e:
        raise StorageUnavailable("Customer directory unavailable") from e


def register_customer(db: Session, name: str, phone: str, address: str, email: Optional[str] = "") -> Customer:
    if not name or not phone or not address:
        raise ValueError("Name, phone number, and address are required")

    if db.query(Customer).filter(Customer.phone == phone).first():
        raise CustomerExists("Phone number already registered")

    # release the request connection before the counter takes one
    db.rollback()
    code = render_customer_code(next_value(db.get_bind(), CUSTOMER_COUNTER))
    now = datetime.now()
    customer = Customer(
        customer_code=code,
        name=name,
        phone=phone,
        email=email or "",
        address=address,
        created_at=now,
        updated_at=now,
    )

    db.add(customer)
    try:
        db.commit()
    except IntegrityError as e:
        # lost a race on the unique phone
        db.rollback()
        raise CustomerExists("Phone number already registered") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("register_customer failed for code %s", code)
        raise PersistenceFailed("Failed to register customer") from e

    db.refresh(customer)
    logger.info("Registered customer %s (%s)", customer.customer_code, customer.name)
    return customer


def update_customer(db: Session, customer_id: int, **fields) -> Customer:
    """
    Edit the directory record. Orders keep the snapshot they took at creation,
    so nothing here touches the orders table.
    """
    customer = resolve_customer(db, customer_id)

    for key, value in fields.items():
        if key not in EDITABLE_FIELDS:
            raise ValueError(f"Field {key!r} cannot be edited")
        if value is not None:
            setattr(customer, key, value)
    customer.updated_at = datetime.now()

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise CustomerExists("Phone number already registered") from e
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceFailed("Failed to update customer") from e

    db.refresh(customer)
    return customer
