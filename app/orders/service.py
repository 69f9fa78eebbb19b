"""Order placement, item appends, status updates and order queries"""

import random
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from app.database import run_in_transaction
from app.errors import InvalidInput, InvalidState, NotFound, OrderConflict
from app.models.billing import BillRequest, OPEN_BILL_STATUSES
from app.models.menu import MenuItem, ModifierOption
from app.models.order import Order, OrderItem, OrderItemModifier
from app.models.restaurant import Table
from app.orders import pricing
from app.orders.cart import clear_cart
from app.orders.state_machine import (
    ACTIVE_STATUSES,
    OPEN_STATUSES,
    OrderStatus,
    TransitionResult,
    apply_transition,
)
from app.schemas.order import OrderCreate, OrderItemCreate

logger = structlog.get_logger()

ORDERABLE_MENU_STATUSES = ("available", "active")


@dataclass
class PreparedItem:
    """A validated, priced order line ready to be persisted"""
    menu_item_id: UUID
    quantity: int
    unit_price: Decimal
    line: pricing.LineTotal
    special_requests: Optional[str] = None
    modifiers: List[tuple] = field(default_factory=list)  # (option_id, price_adjustment)

    def to_model(self, order_id: Optional[UUID] = None) -> OrderItem:
        return OrderItem(
            order_id=order_id,
            menu_item_id=self.menu_item_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            subtotal=self.line.subtotal,
            special_requests=self.special_requests,
            modifiers=[
                OrderItemModifier(modifier_option_id=option_id, price_adjustment=adjustment)
                for option_id, adjustment in self.modifiers
            ],
        )


def generate_order_number(now: Optional[datetime] = None) -> str:
    """
    ORD-YYYYMMDD-XXXX with a random 4-digit suffix.
    Only the suffix separates same-day orders, so numbers can collide.
    """
    now = now or datetime.utcnow()
    return f"ORD-{now:%Y%m%d}-{random.randint(1000, 9999)}"


def order_details_query():
    return select(Order).options(
        selectinload(Order.table),
        selectinload(Order.items).selectinload(OrderItem.menu_item),
        selectinload(Order.items)
        .selectinload(OrderItem.modifiers)
        .selectinload(OrderItemModifier.modifier_option),
    ).execution_options(populate_existing=True)


async def _load_menu_items(
    db: AsyncSession,
    menu_item_ids: Sequence[UUID],
    restaurant_id: UUID,
) -> Dict[UUID, MenuItem]:
    requested = set(menu_item_ids)
    result = await db.execute(
        select(MenuItem).where(
            MenuItem.id.in_(requested),
            MenuItem.restaurant_id == restaurant_id,
            MenuItem.is_deleted == False,
        )
    )
    menu_items = {item.id: item for item in result.scalars().all()}

    if len(menu_items) != len(requested):
        raise InvalidInput("One or more menu items not found")

    unavailable = [
        item for item in menu_items.values()
        if item.status not in ORDERABLE_MENU_STATUSES
    ]
    if unavailable:
        names = ", ".join(sorted(item.name for item in unavailable))
        raise InvalidInput(f"Menu items are unavailable: {names}")

    return menu_items


async def _load_modifier_options(
    db: AsyncSession,
    option_ids: Sequence[UUID],
) -> Dict[UUID, ModifierOption]:
    requested = set(option_ids)
    if not requested:
        return {}

    result = await db.execute(
        select(ModifierOption).where(ModifierOption.id.in_(requested))
    )
    # Legacy rows have no status; anything but "inactive" is selectable
    options = {
        option.id: option
        for option in result.scalars().all()
        if option.status != "inactive"
    }

    missing = requested - set(options)
    if missing:
        logger.warning(
            "Modifier options missing or inactive",
            missing_ids=sorted(str(option_id) for option_id in missing),
        )
        raise InvalidInput("One or more modifier options not found or inactive")

    return options


async def prepare_items(
    db: AsyncSession,
    restaurant_id: UUID,
    items: Sequence[OrderItemCreate],
) -> List[PreparedItem]:
    """Validate referenced menu items and modifiers, then price every line"""
    menu_items = await _load_menu_items(
        db, [item.menu_item_id for item in items], restaurant_id
    )
    options = await _load_modifier_options(
        db,
        [mod.modifier_option_id for item in items for mod in item.modifiers],
    )

    prepared = []
    for item in items:
        menu_item = menu_items[item.menu_item_id]
        chosen = [options[mod.modifier_option_id] for mod in item.modifiers]
        line = pricing.price_line(
            menu_item.price,
            item.quantity,
            [option.price_adjustment for option in chosen],
        )
        prepared.append(
            PreparedItem(
                menu_item_id=menu_item.id,
                quantity=item.quantity,
                unit_price=menu_item.price,
                line=line,
                special_requests=item.special_requests,
                modifiers=[(option.id, option.price_adjustment) for option in chosen],
            )
        )
    return prepared


async def get_order_details(db: AsyncSession, order_id: UUID) -> Order:
    """Order joined with table, items, menu item summaries and modifiers"""
    result = await db.execute(order_details_query().where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if not order:
        raise NotFound(f"Order with ID {order_id} not found")
    return order


async def create_order(db: AsyncSession, order_data: OrderCreate) -> Order:
    """Validate a cart-like request and persist the order atomically"""
    table = await db.get(Table, order_data.table_id)
    if not table:
        raise NotFound(f"Table with ID {order_data.table_id} not found")
    if table.status != "active":
        raise InvalidState("Table is not active")
    if table.restaurant_id != order_data.restaurant_id:
        raise InvalidInput("Table does not belong to this restaurant")

    prepared = await prepare_items(db, order_data.restaurant_id, order_data.items)
    totals = pricing.compute_totals(item.line for item in prepared)

    order = Order(
        order_number=generate_order_number(),
        restaurant_id=order_data.restaurant_id,
        table_id=order_data.table_id,
        customer_id=order_data.customer_id,
        status="pending",
        subtotal=totals.subtotal,
        tax=totals.tax,
        total=totals.total,
        special_requests=order_data.special_requests,
        items=[item.to_model() for item in prepared],
    )

    async with run_in_transaction(db):
        db.add(order)
        await db.flush()

    logger.info(
        "Order created",
        order_id=str(order.id),
        order_number=order.order_number,
        table_id=str(order.table_id),
        item_count=len(prepared),
        total=order.total,
    )

    if order_data.customer_id or order_data.session_id:
        try:
            await clear_cart(db, order_data.customer_id, order_data.session_id)
        except Exception as e:
            logger.warning(
                "Failed to clear cart after order creation",
                order_id=str(order.id),
                error=str(e),
            )

    return await get_order_details(db, order.id)


async def billed_order_ids(
    db: AsyncSession,
    table_id: UUID,
    statuses: Iterable[str] = OPEN_BILL_STATUSES,
) -> Set[str]:
    """Ids of the table's orders already merged into a bill in one of statuses"""
    result = await db.execute(
        select(BillRequest.order_ids).where(
            BillRequest.table_id == table_id,
            BillRequest.status.in_(list(statuses)),
        )
    )
    return {
        str(order_id)
        for order_ids in result.scalars().all()
        for order_id in (order_ids or [])
    }


async def add_items_to_order(
    db: AsyncSession,
    order_id: UUID,
    items: Sequence[OrderItemCreate],
) -> Order:
    """Append new lines to an open order and recompute its totals"""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFound(f"Order with ID {order_id} not found")

    if OrderStatus(order.status) not in OPEN_STATUSES:
        raise InvalidState(
            f'Cannot add items to order with status "{order.status}". '
            "Order must be pending, accepted, or preparing."
        )
    # The payment of an accepted bill is already open for a fixed amount
    if str(order.id) in await billed_order_ids(db, order.table_id, ("accepted",)):
        raise InvalidState(
            f"Order {order.order_number} is on a bill awaiting payment; items cannot be added."
        )

    prepared = await prepare_items(db, order.restaurant_id, items)
    totals = pricing.recompute_with_additional(
        order.subtotal, (item.line for item in prepared)
    )
    previous_subtotal = order.subtotal

    async with run_in_transaction(db):
        for item in prepared:
            db.add(item.to_model(order.id))
        result = await db.execute(
            update(Order)
            .where(
                Order.id == order.id,
                Order.status.in_([status.value for status in OPEN_STATUSES]),
                Order.subtotal == previous_subtotal,
            )
            .values(
                subtotal=totals.subtotal,
                tax=totals.tax,
                total=totals.total,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise OrderConflict(
                f"Order {order_id} changed while items were being added. Reload and retry."
            )

    logger.info(
        "Items added to order",
        order_id=str(order_id),
        added_count=len(prepared),
        subtotal=totals.subtotal,
        total=totals.total,
    )
    return await get_order_details(db, order_id)


async def update_order_status(
    db: AsyncSession,
    order_id: UUID,
    new_status: str,
    reason: Optional[str] = None,
):
    """Apply a waiter/kitchen status change; returns (TransitionResult, Order)"""
    transition: TransitionResult = await apply_transition(db, order_id, new_status, reason)
    order = await get_order_details(db, order_id)
    return transition, order


async def list_orders(
    db: AsyncSession,
    status: Optional[str] = None,
    restaurant_id: Optional[UUID] = None,
    table_id: Optional[UUID] = None,
    customer_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[Order]:
    """Orders matching the filters, newest first"""
    query = order_details_query()

    if status:
        query = query.where(Order.status == status)
    if restaurant_id:
        query = query.where(Order.restaurant_id == restaurant_id)
    if table_id:
        query = query.where(Order.table_id == table_id)
    if customer_id:
        query = query.where(Order.customer_id == customer_id)
    if start_date:
        query = query.where(Order.created_at >= start_date)
    if end_date:
        query = query.where(Order.created_at <= end_date)

    result = await db.execute(query.order_by(Order.created_at.desc()))
    return list(result.scalars().all())


async def list_table_orders(db: AsyncSession, table_id: UUID) -> List[Order]:
    """Orders still in progress at a table"""
    result = await db.execute(
        order_details_query()
        .where(
            Order.table_id == table_id,
            Order.status.in_([status.value for status in ACTIVE_STATUSES]),
        )
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def list_customer_orders(
    db: AsyncSession,
    customer_id: UUID,
    status: Optional[str] = None,
    restaurant_id: Optional[UUID] = None,
) -> List[Order]:
    """Order history of one customer, newest first"""
    return await list_orders(
        db, status=status, restaurant_id=restaurant_id, customer_id=customer_id
    )
