import pytest

from catering.cart import registry
from catering.cart.registry import SOURCE_BATCH, SOURCE_CART
from catering.errors import ReconciliationAmbiguity
from catering.orders import builder
from catering.orders import repository as orders_repository
from catering.payments import reconciler
from catering.payments import session as payments_session

CUSTOMER = {"name": "Parent Test", "email": "parent@example.com", "phone": ""}
NASI = {"id": "m1", "name": "Nasi Goreng", "price": 15000}


def _checked_out(source=SOURCE_CART):
    """Commande issue du panier (ou du lot) du tuteur de test, session ouverte."""
    state = registry.get_state("test-user")
    state.cart.add(NASI, {"id": "c1", "name": "Budi"}, "2026-10-20")
    if source == SOURCE_BATCH:
        state.batch.commit_child_cart("c1")
        lines = state.batch.flatten()
    else:
        lines = state.cart.lines()
    order = builder.build_order(lines, "test-user")
    state.open_checkouts[order.order_number] = source
    payments_session.open_session(order, CUSTOMER)
    return state, order


def _stored_status(order):
    return orders_repository.get_order(order.id)["payment_status"]


def test_parse_status_normalizes_and_rejects_unknown():
    assert reconciler.parse_status(" Success ") == "success"
    assert reconciler.parse_status("close") == "closed"
    with pytest.raises(ReconciliationAmbiguity):
        reconciler.parse_status("refunded")


def test_verified_success_marks_paid_and_clears_cart(gateway):
    state, order = _checked_out()
    gateway.mark_paid(order.session_token)

    result = reconciler.handle_client_callback(order, "success")

    assert result.order.payment_status == "paid"
    assert _stored_status(order) == "paid"
    assert result.cleared is True
    assert state.cart.is_empty()
    assert order.order_number not in state.open_checkouts


def test_unverified_success_is_downgraded_to_pending(gateway):
    state, order = _checked_out()

    result = reconciler.handle_client_callback(order, "success")

    assert result.event == "pending"
    assert _stored_status(order) == "pending"
    assert state.cart.is_empty()


@pytest.mark.parametrize("status", ["error", "closed"])
def test_error_and_close_retain_cart(status):
    state, order = _checked_out()

    result = reconciler.handle_client_callback(order, status)

    assert result.cleared is False
    assert _stored_status(order) == "pending"
    assert not state.cart.is_empty()
    assert order.order_number in state.open_checkouts


def test_unknown_status_is_ambiguous_and_leaves_pending():
    state, order = _checked_out()

    result = reconciler.handle_client_callback(order, "refunded")

    assert result.ambiguous is True
    assert result.order.payment_status == "pending"
    assert not state.cart.is_empty()


def test_client_cannot_report_failed():
    _, order = _checked_out()
    result = reconciler.handle_client_callback(order, "failed")
    assert result.ambiguous is True
    assert _stored_status(order) == "pending"


def test_terminal_states_are_never_left(gateway):
    _, order = _checked_out()
    gateway.mark_paid(order.session_token)
    reconciler.handle_client_callback(order, "success")

    result = reconciler.apply_event(order, "failed")

    assert result.changed is False
    assert _stored_status(order) == "paid"
    assert result.notification["title"] == "Paiement déjà traité"


def test_success_clears_batch_not_cart(gateway):
    state, order = _checked_out(SOURCE_BATCH)
    state.cart.add(NASI, {"id": "c2", "name": "Sari"}, "2026-10-21")
    gateway.mark_paid(order.session_token)

    reconciler.handle_client_callback(order, "success")

    assert state.batch.is_empty()
    assert not state.cart.is_empty()


def test_gateway_event_mapping():
    state, order = _checked_out()
    session = {"id": order.session_token, "metadata": {"order_number": order.order_number}}

    expired = {"type": "checkout.session.expired", "data": {"object": session}}
    result = reconciler.handle_gateway_event(expired)

    assert result.order.payment_status == "failed"
    assert _stored_status(order) == "failed"
    assert not state.cart.is_empty()


def test_gateway_event_completed_paid_uses_client_reference():
    _, order = _checked_out()
    event = {
        "type": "checkout.session.completed",
        "data": {"object": {"client_reference_id": order.order_number, "payment_status": "paid"}},
    }

    result = reconciler.handle_gateway_event(event)

    assert result.order.payment_status == "paid"


def test_gateway_event_ignored_types_and_unknown_orders():
    assert reconciler.handle_gateway_event({"type": "invoice.paid", "data": {"object": {}}}) is None
    unknown = {"type": "checkout.session.completed", "data": {"object": {"client_reference_id": "ORDER-nope"}}}
    assert reconciler.handle_gateway_event(unknown) is None


@pytest.mark.parametrize("status", ["pending", "success"])
def test_order_without_session_never_clears(status):
    state = registry.get_state("test-user")
    state.cart.add(NASI, {"id": "c1", "name": "Budi"}, "2026-10-20")
    order = builder.build_order(state.cart.lines(), "test-user")
    state.open_checkouts[order.order_number] = SOURCE_CART

    result = reconciler.handle_client_callback(order, status)

    assert result.cleared is False
    assert order.session_token is None
    assert state.cart.count() == 1


def test_failed_order_releases_checkout_tracking():
    state, order = _checked_out()
    token = order.session_token
    assert token in payments_session._checkout_urls

    result = reconciler.apply_event(order, "failed")

    assert result.order.payment_status == "failed"
    assert result.cleared is False
    assert not state.cart.is_empty()
    assert order.order_number not in state.open_checkouts
    assert token not in payments_session._checkout_urls
