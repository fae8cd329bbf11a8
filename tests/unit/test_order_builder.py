import re

import pytest

from catering.cart.store import CartStore
from catering.errors import EmptyCartError, PersistenceError
from catering.orders import builder
from catering.orders import service as orders_service

NASI = {"id": "m1", "name": "Nasi Goreng", "price": 15000}
AYAM = {"id": "m2", "name": "Ayam Bakar", "price": 20000}


def _lines(*specs):
    cart = CartStore()
    for item, child_id, qty in specs:
        cart.add(item, {"id": child_id, "name": f"Enfant {child_id}", "class_name": "3A"}, "2026-10-20", quantity=qty)
    return cart.lines()


def test_generate_order_number_format():
    number = builder.generate_order_number("BATCH")
    assert re.fullmatch(r"BATCH-\d{13}-[0-9a-z]{9}", number)
    assert number != builder.generate_order_number("BATCH")


def test_build_order_single_child_totals(memory_store):
    order = builder.build_order(_lines((NASI, "c1", 2)), "test-user")

    assert order.total_amount == 30000
    assert order.order_number.startswith("ORDER-")
    assert order.gateway_order_id == order.order_number
    assert order.status == "pending" and order.payment_status == "pending"
    assert order.session_token is None
    assert len(order.line_items) == 1
    assert order.line_items[0].total_price == 30000
    assert order.child_name == "Enfant c1"
    assert len(memory_store.rows("order_line_items")) == 1


def test_build_order_summarizes_several_children():
    order = builder.build_order(_lines((NASI, "c1", 1), (AYAM, "c2", 1)), "test-user")
    assert order.child_name == "2 enfants"
    assert order.child_class == "Plusieurs classes"
    assert order.total_amount == sum(line.total_price for line in order.line_items)


def test_build_order_rejects_empty_cart(memory_store):
    with pytest.raises(EmptyCartError):
        builder.build_order([], "test-user")
    assert memory_store.rows("orders") == []


def test_duplicate_order_number_same_guardian_resolves_to_existing(memory_store):
    lines = _lines((NASI, "c1", 1))
    first = builder.build_order(lines, "test-user", order_number="ORDER-1-abc")
    again = builder.build_order(lines, "test-user", order_number="ORDER-1-abc")

    assert again.id == first.id
    assert len(memory_store.rows("orders")) == 1
    assert len(memory_store.rows("order_line_items")) == 1


def test_duplicate_order_number_other_guardian_gets_fresh_number(memory_store):
    memory_store.seed("orders", [{"id": "o-other", "order_number": "ORDER-1-abc", "user_id": "someone-else", "status": "pending"}])

    order = builder.build_order(_lines((NASI, "c1", 1)), "test-user", order_number="ORDER-1-abc")

    assert order.order_number != "ORDER-1-abc"
    assert order.user_id == "test-user"
    assert len(memory_store.rows("orders")) == 2


def test_replay_completes_missing_line_items(memory_store):
    memory_store.seed("orders", [{
        "id": "o1", "order_number": "ORDER-2-xyz", "gateway_order_id": "ORDER-2-xyz",
        "user_id": "test-user", "total_amount": 15000, "status": "pending", "payment_status": "pending",
    }])

    order = builder.build_order(_lines((NASI, "c1", 1)), "test-user", order_number="ORDER-2-xyz")

    assert order.id == "o1"
    assert len(order.line_items) == 1
    assert memory_store.rows("order_line_items")[0]["order_id"] == "o1"


def test_line_item_failure_voids_header(memory_store):
    memory_store.fail_on("insert", "order_line_items")

    with pytest.raises(PersistenceError):
        builder.build_order(_lines((NASI, "c1", 1)), "test-user")

    orders = memory_store.rows("orders")
    assert len(orders) == 1
    assert orders[0]["status"] == "cancelled"


def test_orphan_left_by_failed_void_is_cleaned_up(memory_store):
    memory_store.fail_on("insert", "order_line_items")
    memory_store.fail_on("update", "orders")

    with pytest.raises(PersistenceError):
        builder.build_order(_lines((NASI, "c1", 1)), "test-user")
    assert memory_store.rows("orders")[0]["status"] == "pending"

    # En-tête vieilli au-delà du délai de grâce
    memory_store.tables["orders"][0]["created_at"] = "2020-01-01T00:00:00+00:00"
    voided = orders_service.void_orphan_orders(older_than_minutes=30)

    assert voided == [memory_store.rows("orders")[0]["order_number"]]
    assert memory_store.rows("orders")[0]["status"] == "cancelled"


def test_exhausted_collisions_raise(memory_store, monkeypatch):
    memory_store.seed("orders", [{"id": "o-other", "order_number": "FIXED", "user_id": "someone-else", "status": "pending"}])
    monkeypatch.setattr(builder, "generate_order_number", lambda prefix="ORDER": "FIXED")

    with pytest.raises(PersistenceError):
        builder.build_order(_lines((NASI, "c1", 1)), "test-user", order_number="FIXED")
