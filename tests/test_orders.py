"""Tests for order placement and item appends"""

import re
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.errors import InvalidInput, InvalidState, NotFound
from app.models.cart import CartItem
from app.models.menu import MenuItem
from app.models.order import Order
from app.orders import service
from app.orders.service import generate_order_number
from app.schemas.order import OrderCreate, OrderItemCreate


async def _order_count(db):
    result = await db.execute(select(func.count(Order.id)))
    return result.scalar()


def _create(restaurant, table, *items, **fields):
    return OrderCreate(
        restaurant_id=restaurant.id,
        table_id=table.id,
        items=list(items),
        **fields,
    )


def test_order_number_format():
    # The random suffix can collide; only the format is guaranteed
    number = generate_order_number()
    assert re.fullmatch(r"ORD-\d{8}-\d{4}", number)


@pytest.mark.asyncio
async def test_create_order(test_db, test_restaurant, test_table, test_menu_items):
    order = await service.create_order(
        test_db,
        _create(
            test_restaurant,
            test_table,
            OrderItemCreate(menu_item_id=test_menu_items["pho"].id, quantity=2),
            special_requests="Less spicy",
        ),
    )

    assert order.status == "pending"
    assert order.subtotal == 90000
    assert order.tax == 9000
    assert order.total == 99000
    assert order.special_requests == "Less spicy"
    assert re.fullmatch(r"ORD-\d{8}-\d{4}", order.order_number)
    assert order.table.table_number == "T01"
    assert len(order.items) == 1
    assert order.items[0].menu_item.name == "Phở bò"
    assert order.items[0].subtotal == 90000


@pytest.mark.asyncio
async def test_create_order_with_modifiers(test_db, test_restaurant, test_table, test_menu_items, test_modifiers):
    order = await service.create_order(
        test_db,
        _create(
            test_restaurant,
            test_table,
            OrderItemCreate(
                menu_item_id=test_menu_items["com"].id,
                quantity=3,
                modifiers=[{"modifier_option_id": test_modifiers["extra_egg"].id}],
            ),
        ),
    )

    assert order.items[0].subtotal == 202503
    assert order.subtotal == 202503
    assert order.tax == 20250
    assert order.total == 222753
    modifier = order.items[0].modifiers[0]
    assert modifier.modifier_option.name == "Extra egg"


@pytest.mark.asyncio
async def test_legacy_modifier_without_status_is_accepted(test_db, test_restaurant, test_table, test_menu_items, test_modifiers):
    order = await service.create_order(
        test_db,
        _create(
            test_restaurant,
            test_table,
            OrderItemCreate(
                menu_item_id=test_menu_items["pho"].id,
                quantity=1,
                modifiers=[{"modifier_option_id": test_modifiers["legacy"].id}],
            ),
        ),
    )

    assert order.subtotal == 55000


@pytest.mark.asyncio
async def test_inactive_modifier_rejected(test_db, test_restaurant, test_table, test_menu_items, test_modifiers):
    with pytest.raises(InvalidInput):
        await service.create_order(
            test_db,
            _create(
                test_restaurant,
                test_table,
                OrderItemCreate(
                    menu_item_id=test_menu_items["pho"].id,
                    quantity=1,
                    modifiers=[{"modifier_option_id": test_modifiers["retired"].id}],
                ),
            ),
        )

    assert await _order_count(test_db) == 0


@pytest.mark.asyncio
async def test_inactive_menu_item_rejected_and_nothing_written(test_db, test_restaurant, test_table, test_menu_items):
    with pytest.raises(InvalidInput) as exc_info:
        await service.create_order(
            test_db,
            _create(
                test_restaurant,
                test_table,
                OrderItemCreate(menu_item_id=test_menu_items["pho"].id, quantity=1),
                OrderItemCreate(menu_item_id=test_menu_items["banh_xeo"].id, quantity=1),
            ),
        )

    assert "Bánh xèo" in exc_info.value.message
    assert await _order_count(test_db) == 0


@pytest.mark.asyncio
async def test_unknown_menu_item_rejected(test_db, test_restaurant, test_table, test_menu_items):
    with pytest.raises(InvalidInput):
        await service.create_order(
            test_db,
            _create(
                test_restaurant,
                test_table,
                OrderItemCreate(menu_item_id=uuid4(), quantity=1),
            ),
        )


@pytest.mark.asyncio
async def test_deleted_menu_item_rejected(test_db, test_restaurant, test_table, test_menu_items):
    pho = test_menu_items["pho"]
    pho.is_deleted = True
    await test_db.commit()

    with pytest.raises(InvalidInput):
        await service.create_order(
            test_db,
            _create(test_restaurant, test_table, OrderItemCreate(menu_item_id=pho.id, quantity=1)),
        )


@pytest.mark.asyncio
async def test_menu_item_from_other_restaurant_rejected(test_db, test_restaurant, other_restaurant, test_table):
    foreign = MenuItem(id=uuid4(), restaurant_id=other_restaurant.id, name="Sushi", price=90000)
    test_db.add(foreign)
    await test_db.commit()

    with pytest.raises(InvalidInput):
        await service.create_order(
            test_db,
            _create(test_restaurant, test_table, OrderItemCreate(menu_item_id=foreign.id, quantity=1)),
        )


@pytest.mark.asyncio
async def test_same_menu_item_twice_is_allowed(test_db, test_restaurant, test_table, test_menu_items):
    pho_id = test_menu_items["pho"].id
    order = await service.create_order(
        test_db,
        _create(
            test_restaurant,
            test_table,
            OrderItemCreate(menu_item_id=pho_id, quantity=1),
            OrderItemCreate(menu_item_id=pho_id, quantity=1, special_requests="No herbs"),
        ),
    )

    assert len(order.items) == 2
    assert order.subtotal == 90000


@pytest.mark.asyncio
async def test_missing_table(test_db, test_restaurant, test_menu_items):
    data = OrderCreate(
        restaurant_id=test_restaurant.id,
        table_id=uuid4(),
        items=[OrderItemCreate(menu_item_id=test_menu_items["pho"].id, quantity=1)],
    )
    with pytest.raises(NotFound):
        await service.create_order(test_db, data)


@pytest.mark.asyncio
async def test_inactive_table(test_db, test_restaurant, inactive_table, test_menu_items):
    with pytest.raises(InvalidState):
        await service.create_order(
            test_db,
            _create(
                test_restaurant,
                inactive_table,
                OrderItemCreate(menu_item_id=test_menu_items["pho"].id, quantity=1),
            ),
        )


@pytest.mark.asyncio
async def test_session_cart_cleared_after_order(test_db, test_restaurant, test_table, test_menu_items):
    pho_id = test_menu_items["pho"].id
    test_db.add_all([
        CartItem(session_id="sess-1", table_id=test_table.id, menu_item_id=pho_id, quantity=2),
        CartItem(session_id="sess-2", table_id=test_table.id, menu_item_id=pho_id, quantity=1),
    ])
    await test_db.commit()

    await service.create_order(
        test_db,
        _create(
            test_restaurant,
            test_table,
            OrderItemCreate(menu_item_id=pho_id, quantity=2),
            session_id="sess-1",
        ),
    )

    result = await test_db.execute(select(CartItem.session_id))
    assert result.scalars().all() == ["sess-2"]


@pytest.mark.asyncio
async def test_cart_clear_failure_does_not_fail_order(test_db, test_restaurant, test_table, test_menu_items, monkeypatch):
    async def broken_clear_cart(*args, **kwargs):
        raise RuntimeError("cart store unavailable")

    monkeypatch.setattr(service, "clear_cart", broken_clear_cart)

    order = await service.create_order(
        test_db,
        _create(
            test_restaurant,
            test_table,
            OrderItemCreate(menu_item_id=test_menu_items["pho"].id, quantity=1),
            session_id="sess-1",
        ),
    )

    assert order.id is not None
    assert await _order_count(test_db) == 1


@pytest.mark.asyncio
async def test_add_items_recomputes_from_persisted_subtotal(test_db, make_order, test_menu_items, test_modifiers):
    order = await make_order(status="accepted")

    updated = await service.add_items_to_order(
        test_db,
        order.id,
        [OrderItemCreate(menu_item_id=test_menu_items["pho"].id, quantity=1)],
    )

    assert updated.subtotal == 135000
    assert updated.tax == 13500
    assert updated.total == 148500
    assert len(updated.items) == 1


@pytest.mark.asyncio
async def test_add_items_validates_modifiers(test_db, make_order, test_menu_items, test_modifiers):
    order = await make_order(status="pending")

    with pytest.raises(InvalidInput):
        await service.add_items_to_order(
            test_db,
            order.id,
            [
                OrderItemCreate(
                    menu_item_id=test_menu_items["pho"].id,
                    quantity=1,
                    modifiers=[{"modifier_option_id": test_modifiers["retired"].id}],
                )
            ],
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["ready", "served", "completed", "cancelled"])
async def test_add_items_to_closed_order_fails(test_db, make_order, test_menu_items, status):
    order = await make_order(status=status)

    with pytest.raises(InvalidState):
        await service.add_items_to_order(
            test_db,
            order.id,
            [OrderItemCreate(menu_item_id=test_menu_items["pho"].id, quantity=1)],
        )

    await test_db.refresh(order)
    assert order.subtotal == 90000
    assert order.total == 99000
    details = await service.get_order_details(test_db, order.id)
    assert details.items == []


@pytest.mark.asyncio
async def test_add_items_to_missing_order(test_db, test_menu_items):
    with pytest.raises(NotFound):
        await service.add_items_to_order(
            test_db,
            uuid4(),
            [OrderItemCreate(menu_item_id=test_menu_items["pho"].id, quantity=1)],
        )


@pytest.mark.asyncio
async def test_update_order_status_returns_details(test_db, make_order):
    order = await make_order(status="pending")

    transition, details = await service.update_order_status(test_db, order.id, "accepted")

    assert transition.previous.value == "pending"
    assert details.status == "accepted"
    assert details.accepted_at is not None


@pytest.mark.asyncio
async def test_list_table_orders_excludes_closed(test_db, make_order, test_table):
    open_order = await make_order(status="preparing")
    await make_order(status="completed")
    await make_order(status="rejected")

    orders = await service.list_table_orders(test_db, test_table.id)

    assert [order.id for order in orders] == [open_order.id]


@pytest.mark.asyncio
async def test_list_orders_filters(test_db, make_order, test_restaurant, test_customer):
    mine = await make_order(status="pending", customer_id=test_customer.id)
    await make_order(status="served")

    served = await service.list_orders(test_db, status="served", restaurant_id=test_restaurant.id)
    assert [order.status for order in served] == ["served"]

    history = await service.list_customer_orders(test_db, test_customer.id)
    assert [order.id for order in history] == [mine.id]
