import logging

import pytest
from sqlalchemy import func, select

from shop_service.exceptions import (
    InsufficientStock,
    InvalidStatusTransition,
    OrderNotFound,
    ProductNotFound,
)
from shop_service.models.order import Order, OrderItem, OrderStatus, can_transition
from shop_service.models.product import Product
from shop_service.models.schemas import OrderCreate
from shop_service.services.order_service import OrderService, generate_order_number


def order_request(*lines):
    return OrderCreate(items=[{"product_id": p.id, "quantity": q} for p, q in lines])


def paid_order(db, user, *lines):
    order = OrderService.create_order(db, user.id, order_request(*lines))
    return OrderService.pay_order(db, order.id, user.id)


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def products(make_product):
    return make_product("Product A", price=10.0, stock=5), make_product("Product B", price=5.0, stock=1)


def test_create_order_freezes_prices_and_total(db, customer, products):
    a, b = products
    order = OrderService.create_order(db, customer.id, order_request((a, 2), (b, 1)))

    assert order.status == OrderStatus.PENDING
    assert order.total_amount == pytest.approx(25.0)
    assert [(i.product_id, i.quantity, i.price_at_moment) for i in order.items] == [(a.id, 2, 10.0), (b.id, 1, 5.0)]
    assert order.order_number.startswith("ORD-")
    assert f"-{customer.id}-" in order.order_number


def test_create_order_does_not_touch_stock(db, customer, products):
    a, b = products
    OrderService.create_order(db, customer.id, order_request((a, 2), (b, 1)))

    db.expire_all()
    assert db.get(Product, a.id).stock == 5
    assert db.get(Product, b.id).stock == 1
    assert db.get(Product, a.id).order_count == 0


def test_price_change_after_order_keeps_frozen_price(db, customer, products):
    a, _ = products
    order = OrderService.create_order(db, customer.id, order_request((a, 1)))

    a.price = 99.0
    db.commit()

    order = OrderService.get_order(db, order.id)
    assert order.items[0].price_at_moment == 10.0
    assert order.total_amount == pytest.approx(10.0)


def test_create_order_insufficient_stock_persists_nothing(db, customer, make_product):
    a = make_product("Product A", stock=5)
    empty = make_product("Sold Out Lamp", stock=0)

    with pytest.raises(InsufficientStock) as exc_info:
        OrderService.create_order(db, customer.id, order_request((a, 1), (empty, 1)))

    assert "Sold Out Lamp" in exc_info.value.message
    assert db.scalar(select(func.count()).select_from(Order)) == 0
    assert db.scalar(select(func.count()).select_from(OrderItem)) == 0


def test_create_order_sums_repeated_lines_against_stock(db, customer, products):
    a, _ = products

    with pytest.raises(InsufficientStock) as exc_info:
        OrderService.create_order(db, customer.id, order_request((a, 3), (a, 3)))

    assert exc_info.value.available == 5
    assert exc_info.value.requested == 6
    assert db.scalar(select(func.count()).select_from(Order)) == 0


def test_create_order_repeated_lines_within_stock(db, customer, products):
    a, _ = products

    order = OrderService.create_order(db, customer.id, order_request((a, 2), (a, 3)))

    assert [i.quantity for i in order.items] == [2, 3]
    assert order.total_amount == pytest.approx(50.0)


def test_create_order_unknown_product(db, customer):
    with pytest.raises(ProductNotFound):
        OrderService.create_order(db, customer.id, OrderCreate(items=[{"product_id": 999, "quantity": 1}]))

    assert db.scalar(select(func.count()).select_from(Order)) == 0


def test_order_numbers_are_unique_within_a_second():
    numbers = {generate_order_number(7) for _ in range(50)}
    assert len(numbers) == 50


def test_confirm_worked_example(db, customer, products):
    a, b = products
    order = paid_order(db, customer, (a, 2), (b, 1))

    confirmed = OrderService.confirm_order(db, order.id)

    assert confirmed.status == OrderStatus.CONFIRMED
    assert db.get(Product, a.id).stock == 3
    assert db.get(Product, b.id).stock == 0
    assert db.get(Product, a.id).order_count == 1
    assert db.get(Product, b.id).order_count == 1


def test_confirm_counts_one_per_line_not_per_unit(db, customer, make_product):
    a = make_product(stock=10)
    order = paid_order(db, customer, (a, 4))

    OrderService.confirm_order(db, order.id)

    product = db.get(Product, a.id)
    assert product.stock == 6
    assert product.order_count == 1


def test_confirm_rolls_back_everything_when_stock_ran_out(db, customer, products):
    a, b = products
    first = paid_order(db, customer, (a, 2), (b, 1))
    second = paid_order(db, customer, (a, 1), (b, 1))
    OrderService.confirm_order(db, first.id)

    with pytest.raises(InsufficientStock) as exc_info:
        OrderService.confirm_order(db, second.id)

    assert "Product B" in exc_info.value.message
    # The A line of the failed confirm is undone too
    assert db.get(Product, a.id).stock == 3
    assert db.get(Product, a.id).order_count == 1
    assert db.get(Product, b.id).stock == 0
    assert OrderService.get_order(db, second.id).status == OrderStatus.PAID


def test_confirm_requires_paid(db, customer, products):
    a, _ = products
    order = OrderService.create_order(db, customer.id, order_request((a, 1)))

    with pytest.raises(InvalidStatusTransition) as exc_info:
        OrderService.confirm_order(db, order.id)

    assert exc_info.value.message == "order must be paid before confirmation"
    assert db.get(Product, a.id).stock == 5


def test_full_lifecycle(db, customer, products):
    a, _ = products
    order = paid_order(db, customer, (a, 1))

    assert OrderService.confirm_order(db, order.id).status == OrderStatus.CONFIRMED
    assert OrderService.ship_order(db, order.id).status == OrderStatus.SHIPPED
    assert OrderService.deliver_order(db, order.id).status == OrderStatus.DELIVERED


@pytest.mark.parametrize("operation", ["ship_order", "deliver_order"])
def test_skipping_steps_is_rejected(db, customer, products, operation):
    a, _ = products
    order = paid_order(db, customer, (a, 1))

    with pytest.raises(InvalidStatusTransition):
        getattr(OrderService, operation)(db, order.id)

    assert OrderService.get_order(db, order.id).status == OrderStatus.PAID


def test_pay_twice_is_rejected(db, customer, products):
    a, _ = products
    order = paid_order(db, customer, (a, 1))

    with pytest.raises(InvalidStatusTransition) as exc_info:
        OrderService.pay_order(db, order.id, customer.id)

    assert exc_info.value.message == "only pending orders can be paid"


def test_pay_other_users_order_is_not_found(db, customer, make_user, products):
    a, _ = products
    order = OrderService.create_order(db, customer.id, order_request((a, 1)))
    other = make_user()

    with pytest.raises(OrderNotFound):
        OrderService.pay_order(db, order.id, other.id)

    assert OrderService.get_order(db, order.id).status == OrderStatus.PENDING


def test_cancel_pending_and_paid(db, customer, products):
    a, _ = products
    pending = OrderService.create_order(db, customer.id, order_request((a, 1)))
    paid = paid_order(db, customer, (a, 1))

    assert OrderService.cancel_order(db, pending.id, user_id=customer.id).status == OrderStatus.CANCELLED
    assert OrderService.cancel_order(db, paid.id).status == OrderStatus.CANCELLED
    assert db.get(Product, a.id).stock == 5


def test_cancel_terminal_orders_fails(db, customer, products):
    a, _ = products
    delivered = paid_order(db, customer, (a, 1))
    OrderService.confirm_order(db, delivered.id)
    OrderService.ship_order(db, delivered.id)
    OrderService.deliver_order(db, delivered.id)

    cancelled = OrderService.create_order(db, customer.id, order_request((a, 1)))
    OrderService.cancel_order(db, cancelled.id)

    for order_id in (delivered.id, cancelled.id):
        with pytest.raises(InvalidStatusTransition):
            OrderService.cancel_order(db, order_id)


def test_cancel_after_confirm_restores_stock(db, customer, products, caplog):
    a, b = products
    order = paid_order(db, customer, (a, 2), (b, 1))
    OrderService.confirm_order(db, order.id)
    OrderService.ship_order(db, order.id)

    with caplog.at_level(logging.WARNING, logger="shop_service.services.order_service"):
        OrderService.cancel_order(db, order.id)

    assert db.get(Product, a.id).stock == 5
    assert db.get(Product, b.id).stock == 1
    # Popularity is history, not reverted
    assert db.get(Product, a.id).order_count == 1
    assert any(getattr(r, "event", None) == "stock_restored" for r in caplog.records)


def test_user_cancel_of_other_users_order_is_not_found(db, customer, make_user, products):
    a, _ = products
    order = OrderService.create_order(db, customer.id, order_request((a, 1)))

    with pytest.raises(OrderNotFound):
        OrderService.cancel_order(db, order.id, user_id=make_user().id)


def test_update_order_status_only_allows_cancel(db, customer, products):
    a, _ = products
    order = OrderService.create_order(db, customer.id, order_request((a, 1)))

    with pytest.raises(InvalidStatusTransition) as exc_info:
        OrderService.update_order_status(db, order.id, customer.id, OrderStatus.PAID)
    assert exc_info.value.message == "users can only cancel orders"

    updated = OrderService.update_order_status(db, order.id, customer.id, OrderStatus.CANCELLED)
    assert updated.status == OrderStatus.CANCELLED


def test_update_order_status_checks_ownership_first(db, customer, make_user, products):
    a, _ = products
    order = OrderService.create_order(db, customer.id, order_request((a, 1)))

    with pytest.raises(OrderNotFound):
        OrderService.update_order_status(db, order.id, make_user().id, OrderStatus.PAID)


def test_user_orders_newest_first(db, customer, make_user, products):
    a, _ = products
    first = OrderService.create_order(db, customer.id, order_request((a, 1)))
    second = OrderService.create_order(db, customer.id, order_request((a, 2)))
    OrderService.create_order(db, make_user().id, order_request((a, 1)))

    orders = OrderService.get_user_orders(db, customer.id)

    assert [o.id for o in orders] == [second.id, first.id]


def test_get_all_orders_filters_and_counts(db, customer, products):
    a, _ = products
    OrderService.create_order(db, customer.id, order_request((a, 1)))
    paid = paid_order(db, customer, (a, 1))

    orders, total = OrderService.get_all_orders(db, status=OrderStatus.PAID)
    assert total == 1
    assert [o.id for o in orders] == [paid.id]

    orders, total = OrderService.get_all_orders(db, skip=0, limit=1)
    assert total == 2
    assert len(orders) == 1


@pytest.mark.parametrize("current,target,allowed", [
    (OrderStatus.PENDING, OrderStatus.PAID, True),
    (OrderStatus.PENDING, OrderStatus.CONFIRMED, False),
    (OrderStatus.PAID, OrderStatus.CONFIRMED, True),
    (OrderStatus.CONFIRMED, OrderStatus.DELIVERED, False),
    (OrderStatus.SHIPPED, OrderStatus.CANCELLED, True),
    (OrderStatus.DELIVERED, OrderStatus.CANCELLED, False),
    (OrderStatus.CANCELLED, OrderStatus.PENDING, False),
])
def test_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed
