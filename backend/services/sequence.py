# services/sequence.py
"""
Named monotonic counters used to build human-readable identifiers.

Each allocation is ONE storage statement that creates the counter row if it
is missing, bumps it by one and hands back the new value. There is never a
separate read followed by a write, so concurrent callers can't observe the
same value.

The allocation runs in its own short transaction on its own connection and is
committed before the caller continues. A value handed out is consumed even if
the caller later fails to persist what it was meant for.
"""

from sqlalchemy import func, text
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Counter
from services.errors import StorageUnavailable
from utils.log import get_logger

logger = get_logger("sequence")

ORDER_COUNTER = "orderId"
CUSTOMER_COUNTER = "customerId"

ORDER_ID_PREFIX = "ORD"
ID_OFFSET = 100000


def _returning_upsert(insert, counter_name: str):
    # INSERT ... ON CONFLICT (name) DO UPDATE SET sequence = sequence + 1 RETURNING sequence
    return (
        insert(Counter)
        .values(name=counter_name, sequence=1)
        .on_conflict_do_update(
            index_elements=[Counter.name],
            set_={"sequence": Counter.sequence + 1},
        )
        .returning(Counter.sequence)
    )


def _increment_sqlite(db: Session, counter_name: str) -> int:
    return db.execute(_returning_upsert(sqlite.insert, counter_name)).scalar_one()


def _increment_postgresql(db: Session, counter_name: str) -> int:
    return db.execute(_returning_upsert(postgresql.insert, counter_name)).scalar_one()


def _increment_last_insert_id(db: Session, counter_name: str) -> int:
    # LAST_INSERT_ID(expr) stores expr for this connection only, so the
    # follow-up SELECT reads our own increment and nobody else's
    stmt = (
        mysql.insert(Counter)
        .values(name=counter_name, sequence=func.last_insert_id(1))
        .on_duplicate_key_update(sequence=func.last_insert_id(Counter.sequence + 1))
    )
    db.execute(stmt)
    return db.execute(text("SELECT LAST_INSERT_ID()")).scalar_one()


INCREMENTERS = {
    "sqlite": _increment_sqlite,
    "postgresql": _increment_postgresql,
    "mysql": _increment_last_insert_id,
    "mariadb": _increment_last_insert_id,
}


def next_value(bind, counter_name: str) -> int:
    """Atomically increment ``counter_name`` and return the new value.

    ``bind`` is an Engine, typically ``db.get_bind()`` from
    the request session. Raises StorageUnavailable when the store rejects the
    statement; in that case no value was issued.
    """
    incrementer = INCREMENTERS.get(bind.dialect.name)
    if incrementer is None:
        raise StorageUnavailable(f"No atomic counter support for dialect {bind.dialect.name!r}")

    try:
        with Session(bind) as session:
            with session.begin():
                value = incrementer(session, counter_name)
    except SQLAlchemyError as e:
        logger.exception("Counter %s increment failed", counter_name)
        raise StorageUnavailable(f"Counter {counter_name!r} unavailable") from e

    logger.debug("Counter %s -> %s", counter_name, value)
    return int(value)


def render_order_id(sequence: int) -> str:
    return f"{ORDER_ID_PREFIX}{ID_OFFSET + sequence}"


def render_customer_code(sequence: int) -> str:
    return str(ID_OFFSET + sequence)
