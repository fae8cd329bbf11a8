import pytest

from catering.cart.batch import BatchAggregator
from catering.cart.store import CartStore
from catering.errors import ValidationError

NASI = {"id": "m1", "name": "Nasi Goreng", "price": 15000}
AYAM = {"id": "m2", "name": "Ayam Bakar", "price": 20000}
SOTO = {"id": "m3", "name": "Soto Ayam", "price": 17500}


def _cart_with(item, child_id, qty=1):
    cart = CartStore()
    cart.add(item, {"id": child_id}, "2026-10-20", quantity=qty)
    return cart


def test_commit_snapshots_and_clears_cart():
    cart = _cart_with(NASI, "c1", qty=2)
    batch = BatchAggregator(cart)

    entry = batch.commit_child_cart("c1", child={"name": "Budi", "class_name": "3A"})

    assert cart.is_empty()
    assert entry.child_name == "Budi"
    assert entry.computed_total == 30000
    assert all(line.child_id == "c1" for line in entry.lines)


def test_later_cart_changes_do_not_touch_committed_entry():
    cart = _cart_with(NASI, "c1")
    batch = BatchAggregator(cart)
    entry = batch.commit_child_cart("c1")

    cart.add(NASI, {"id": "c1"}, "2026-10-20", quantity=4)
    cart.set_quantity(cart.lines()[0].line_id, 9)

    assert batch.entries()[0] == entry
    assert batch.entries()[0].lines[0].quantity == 1
    assert batch.total_amount() == 15000


def test_commit_restamps_child_identity():
    cart = _cart_with(AYAM, "c1")
    batch = BatchAggregator(cart)

    entry = batch.commit_child_cart("c2", child={"name": "Sari", "class_name": "5B"})

    assert entry.lines[0].child_id == "c2"
    assert entry.lines[0].child_name == "Sari"
    assert entry.lines[0].child_class == "5B"


def test_commit_rejects_missing_child_or_empty_cart():
    batch = BatchAggregator(CartStore())
    with pytest.raises(ValidationError):
        batch.commit_child_cart("c1")

    cart = _cart_with(NASI, "c1")
    batch = BatchAggregator(cart)
    with pytest.raises(ValidationError):
        batch.commit_child_cart("")
    assert not cart.is_empty()


def test_flatten_total_and_remove_entry():
    cart = CartStore()
    batch = BatchAggregator(cart)
    cart.add(AYAM, {"id": "c1"}, "2026-10-20")
    first = batch.commit_child_cart("c1", notes="sans piment", child={"name": "Budi"})
    cart.add(SOTO, {"id": "c2"}, "2026-10-20", quantity=2)
    batch.commit_child_cart("c2", child={"name": "Sari"})

    assert batch.total_amount() == 55000
    assert {line.child_id for line in batch.flatten()} == {"c1", "c2"}
    assert batch.notes() == "Budi: sans piment"

    assert batch.remove_entry(first.batch_entry_id) is True
    assert batch.remove_entry("unknown") is False
    assert batch.total_amount() == 35000

    batch.clear()
    assert batch.is_empty()


def test_same_child_committed_twice_keeps_both_entries():
    cart = _cart_with(NASI, "c1")
    batch = BatchAggregator(cart)
    batch.commit_child_cart("c1")
    cart.add(AYAM, {"id": "c1"}, "2026-10-21")
    batch.commit_child_cart("c1")

    assert [e.child_id for e in batch.entries()] == ["c1", "c1"]
    assert sum(line.total_price for line in batch.flatten()) == 35000
