from storefront.db import OrderItemRow
from storefront.stores import AddressStore, NewOrder, OrderStatus, OrderStore, UserStore


def _new_order(**overrides):
    fields = dict(user_id="user-1", total_amount=99.0, address_id="addr-1", payment_method="phonepe:MT1")
    fields.update(overrides)
    return NewOrder(**fields)


def test_create_and_find_order(session_factory, seeded):
    store = OrderStore(session_factory)
    order = store.create(_new_order())

    found = store.find_by_id(order.id)
    assert found == order
    assert found.status is OrderStatus.PENDING
    assert store.find_by_id("missing") is None


def test_update_status_is_compare_and_set(session_factory, seeded):
    store = OrderStore(session_factory)
    order = store.create(_new_order())

    assert store.update_status(order.id, OrderStatus.PENDING, OrderStatus.FAILED)
    assert not store.update_status(order.id, OrderStatus.PENDING, OrderStatus.SUCCESS)
    assert store.find_by_id(order.id).status is OrderStatus.FAILED


def test_confirm_requires_matching_payment_method(session_factory, seeded):
    store = OrderStore(session_factory)
    order = store.create(_new_order())

    assert store.confirm(order.id, "phonepe:OTHER") is None
    assert store.find_by_id(order.id).status is OrderStatus.PENDING


def test_confirm_returns_committed_lines(session_factory, seeded):
    store = OrderStore(session_factory)
    order = store.create(_new_order())

    confirmed = store.confirm(order.id, "phonepe:MT1")
    assert confirmed.order.status is OrderStatus.SUCCESS
    assert confirmed.user.email == "asha@example.com"
    assert confirmed.address.city == "Bengaluru"
    assert {(line.product_id, line.quantity) for line in confirmed.lines} == {
        ("prod-table", 1),
        ("prod-chair", 2),
    }


def test_confirm_with_empty_cart_still_confirms(session_factory, seeded):
    store = OrderStore(session_factory)
    order = store.create(_new_order(user_id="user-2", address_id=None))

    confirmed = store.confirm(order.id, "phonepe:MT1")
    assert confirmed.lines == []
    assert confirmed.address is None


def test_delete_removes_order(session_factory, seeded):
    store = OrderStore(session_factory)
    order = store.create(_new_order())

    assert store.delete(order.id)
    assert store.find_by_id(order.id) is None
    assert not store.delete(order.id)
    with session_factory() as session:
        assert session.query(OrderItemRow).filter_by(order_id=order.id).count() == 0


def test_address_lookup_is_scoped_to_owner(session_factory, seeded):
    addresses = AddressStore(session_factory)
    assert addresses.find_by_id("addr-1", "user-1").postal_code == "560001"
    assert addresses.find_by_id("addr-1", "user-2") is None


def test_user_store(session_factory, seeded):
    users = UserStore(session_factory)
    assert users.find_by_id("user-1").name == "Asha"
    assert users.find_by_id("ghost") is None
