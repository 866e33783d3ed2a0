from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import ADDRESS, item
from services.customers import register_customer
from services.errors import InvalidPagination, InvalidStatus
from services.order_lifecycle import create_order, set_order_status
from services.order_stats import get_order_statistics, list_orders_admin


def place_many(db, customer, n, price=10):
    return [create_order(db, customer.id, [item(price)], ADDRESS, "cash").order_id for _ in range(n)]


# -------------------------
# Admin listing
# -------------------------

def test_last_partial_page(db, customer):
    place_many(db, customer, 23)

    result = list_orders_admin(db, page=3, page_size=10)

    assert len(result["orders"]) == 3
    assert result["pagination"] == {
        "current_page": 3,
        "total_pages": 3,
        "total_orders": 23,
        "has_next_page": False,
        "has_prev_page": True,
    }


def test_first_page_is_newest(db, customer):
    ids = place_many(db, customer, 12)

    result = list_orders_admin(db, page=1, page_size=5)

    assert [o["order_id"] for o in result["orders"]] == ids[::-1][:5]
    assert result["pagination"]["has_next_page"] is True
    assert result["pagination"]["has_prev_page"] is False


def test_out_of_range_page_is_empty_not_an_error(db, customer):
    place_many(db, customer, 4)

    result = list_orders_admin(db, page=9, page_size=10)

    assert result["orders"] == []
    assert result["pagination"]["total_pages"] == 1
    assert result["pagination"]["total_orders"] == 4
    assert result["pagination"]["has_next_page"] is False
    assert result["pagination"]["has_prev_page"] is True


def test_no_orders_gives_zero_pages(db):
    result = list_orders_admin(db)
    assert result["orders"] == []
    assert result["pagination"]["total_pages"] == 0
    assert result["pagination"]["has_next_page"] is False


def test_status_filter(db, customer):
    ids = place_many(db, customer, 5)
    set_order_status(db, ids[1], "shipped")
    set_order_status(db, ids[3], "shipped")

    shipped = list_orders_admin(db, status="shipped")
    assert {o["order_id"] for o in shipped["orders"]} == {ids[1], ids[3]}
    assert shipped["pagination"]["total_orders"] == 2

    assert list_orders_admin(db, status="all")["pagination"]["total_orders"] == 5
    assert list_orders_admin(db, status=None)["pagination"]["total_orders"] == 5


def test_unknown_status_filter(db):
    with pytest.raises(InvalidStatus):
        list_orders_admin(db, status="teleported")


@pytest.mark.parametrize("page, size", [(0, 10), (1, 0), (-1, -1)])
def test_bad_paging(db, page, size):
    with pytest.raises(InvalidPagination):
        list_orders_admin(db, page=page, page_size=size)


def test_admin_row_carries_customer_snapshot_and_line_totals(db, customer):
    create_order(db, customer.id, [item("12.50", 3, name="Soap")], ADDRESS, "upi")

    row = list_orders_admin(db)["orders"][0]

    assert row["customer_name"] == "Asha Rao"
    assert row["customer_phone"] == "9000000001"
    assert row["products"][0]["total"] == Decimal("37.50")
    assert row["payment_method"] == "upi"


# -------------------------
# Statistics
# -------------------------

def test_stats_with_no_orders(db):
    stats = get_order_statistics(db)

    assert stats["total_orders"] == 0
    assert stats["delivered_orders"] == 0
    assert stats["pending_orders"] == 0
    assert stats["total_revenue"] == Decimal("0")
    assert stats["avg_order_value"] == Decimal("0")
    assert stats["customer_count"] == 0


def test_stats_count_revenue_from_delivered_only(db, customer):
    register_customer(db, "Ravi", "9222222222", "7 Hill Road")

    big = create_order(db, customer.id, [item(300, 2)], ADDRESS, "cash")     # 648.00
    small = create_order(db, customer.id, [item(50, 1)], ADDRESS, "cash")    # 59.99
    open_ = create_order(db, customer.id, [item(50, 1)], ADDRESS, "cash")    # 59.99
    dropped = create_order(db, customer.id, [item(100, 1)], ADDRESS, "cash")

    set_order_status(db, big.order_id, "delivered")
    set_order_status(db, small.order_id, "delivered")
    set_order_status(db, open_.order_id, "out_for_delivery")
    set_order_status(db, dropped.order_id, "cancelled")

    stats = get_order_statistics(db)

    assert stats["total_orders"] == 4
    assert stats["delivered_orders"] == 2
    assert stats["pending_orders"] == 1
    assert stats["total_revenue"] == Decimal("707.99")
    # averaged over every order, not just delivered ones
    assert stats["avg_order_value"] == Decimal("177.00")
    assert stats["customer_count"] == 2


def test_pending_covers_every_open_status(db, customer):
    ids = place_many(db, customer, 5)
    for oid, status in zip(ids[1:], ["processing", "packed", "shipped", "out_for_delivery"]):
        set_order_status(db, oid, status)

    stats = get_order_statistics(db)
    assert stats["pending_orders"] == 5
    assert stats["delivered_orders"] == 0
    assert stats["total_revenue"] == Decimal("0")
