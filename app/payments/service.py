"""Bill requests and payment initiation"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import httpx
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.database import run_in_transaction
from app.errors import Forbidden, GatewayError, InvalidInput, InvalidState, NotFound
from app.models.billing import BillRequest, Payment, PaymentMethod
from app.models.order import Order
from app.models.restaurant import Table
from app.orders.service import billed_order_ids, list_table_orders
from app.orders.state_machine import OrderStatus, TERMINAL_STATUSES
from app.payments.gateways import get_payment_gateway
from app.schemas.billing import BillRequestCreate

logger = structlog.get_logger()


async def list_payment_methods(db: AsyncSession) -> List[PaymentMethod]:
    """Active payment methods in display order"""
    result = await db.execute(
        select(PaymentMethod)
        .where(PaymentMethod.is_active == True)
        .order_by(PaymentMethod.display_order, PaymentMethod.name)
    )
    return list(result.scalars().all())


async def _get_active_method(db: AsyncSession, code: str) -> PaymentMethod:
    result = await db.execute(
        select(PaymentMethod).where(
            PaymentMethod.code == code.lower(),
            PaymentMethod.is_active == True,
        )
    )
    method = result.scalar_one_or_none()
    if not method:
        raise InvalidInput(f"Payment method {code} not found or inactive")
    return method


async def _load_bill_orders(
    db: AsyncSession,
    table_id: UUID,
    order_ids: Optional[Sequence[UUID]],
) -> List[Order]:
    billed = await billed_order_ids(db, table_id)

    if order_ids is None:
        orders = [
            order for order in await list_table_orders(db, table_id)
            if str(order.id) not in billed
        ]
        if not orders:
            raise InvalidState("No unbilled active orders at this table")
        return orders

    requested = set(order_ids)
    if not requested:
        raise InvalidInput("At least one order is required")

    result = await db.execute(select(Order).where(Order.id.in_(requested)))
    orders = list(result.scalars().all())
    if len(orders) != len(requested):
        raise InvalidInput("One or more orders not found")

    foreign = [order.order_number for order in orders if order.table_id != table_id]
    if foreign:
        raise InvalidInput(f"Orders do not belong to this table: {', '.join(sorted(foreign))}")

    closed = [
        order.order_number for order in orders
        if OrderStatus(order.status) in TERMINAL_STATUSES
    ]
    if closed:
        raise InvalidState(f"Orders are already closed: {', '.join(sorted(closed))}")

    on_bill = [order.order_number for order in orders if str(order.id) in billed]
    if on_bill:
        raise InvalidState(f"Orders are already on an open bill: {', '.join(sorted(on_bill))}")

    return orders


async def _current_subtotal(db: AsyncSession, order_ids: Sequence[Any]) -> int:
    """Sum of the merged orders' totals as they are stored now"""
    ids = [UUID(str(order_id)) for order_id in order_ids]
    if not ids:
        return 0
    result = await db.execute(
        select(func.coalesce(func.sum(Order.total), 0)).where(Order.id.in_(ids))
    )
    return int(result.scalar_one())


async def create_bill_request(db: AsyncSession, data: BillRequestCreate) -> BillRequest:
    """Merge a table's orders into one bill awaiting waiter acceptance"""
    table = await db.get(Table, data.table_id)
    if not table:
        raise NotFound(f"Table with ID {data.table_id} not found")

    orders = await _load_bill_orders(db, data.table_id, data.order_ids)
    method = await _get_active_method(db, data.payment_method_code)

    subtotal = sum(order.total for order in orders)
    bill = BillRequest(
        restaurant_id=table.restaurant_id,
        table_id=table.id,
        customer_id=data.customer_id,
        order_ids=[str(order.id) for order in orders],
        subtotal=subtotal,
        tips_amount=data.tips_amount,
        total_amount=subtotal + data.tips_amount,
        payment_method_code=method.code,
        status="pending",
    )

    async with run_in_transaction(db):
        db.add(bill)
        await db.flush()

    logger.info(
        "Bill requested",
        bill_request_id=str(bill.id),
        table_id=str(table.id),
        order_count=len(orders),
        total_amount=bill.total_amount,
        payment_method=method.code,
    )
    return bill


async def get_bill_request(db: AsyncSession, bill_request_id: UUID) -> BillRequest:
    result = await db.execute(
        select(BillRequest)
        .where(BillRequest.id == bill_request_id)
        .execution_options(populate_existing=True)
    )
    bill = result.scalar_one_or_none()
    if not bill:
        raise NotFound(f"Bill request with ID {bill_request_id} not found")
    return bill


async def list_bill_requests(
    db: AsyncSession,
    restaurant_id: UUID,
    status: Optional[str] = None,
) -> List[BillRequest]:
    """Bill requests of a restaurant, newest first"""
    query = select(BillRequest).where(BillRequest.restaurant_id == restaurant_id)
    if status:
        query = query.where(BillRequest.status == status)
    result = await db.execute(query.order_by(BillRequest.created_at.desc()))
    return list(result.scalars().all())


async def _set_pending_bill_status(
    db: AsyncSession,
    bill: BillRequest,
    status: str,
    restaurant_id: Optional[UUID] = None,
    **values,
) -> None:
    if restaurant_id and bill.restaurant_id != restaurant_id:
        raise Forbidden("You can only manage bill requests from your restaurant")
    if bill.status != "pending":
        raise InvalidState(f'Bill request is already "{bill.status}"')

    async with run_in_transaction(db):
        result = await db.execute(
            update(BillRequest)
            .where(BillRequest.id == bill.id, BillRequest.status == "pending")
            .values(status=status, updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState("Bill request was handled by someone else")


async def accept_bill_request(
    db: AsyncSession,
    bill_request_id: UUID,
    restaurant_id: Optional[UUID] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """Waiter accepts a bill; the payment is initiated right away"""
    bill = await get_bill_request(db, bill_request_id)

    # Orders stay open until payment, so items may have been added since the request
    subtotal = await _current_subtotal(db, bill.order_ids or [])
    await _set_pending_bill_status(
        db,
        bill,
        "accepted",
        restaurant_id,
        subtotal=subtotal,
        total_amount=subtotal + bill.tips_amount,
    )
    bill = await get_bill_request(db, bill.id)

    logger.info(
        "Bill request accepted",
        bill_request_id=str(bill.id),
        total_amount=bill.total_amount,
    )

    payment = await initiate_payment(
        db,
        bill.id,
        bill.payment_method_code,
        bill.subtotal,
        bill.tips_amount,
        bill.order_ids,
        http_client=http_client,
    )
    return {"bill_request": await get_bill_request(db, bill.id), "payment": payment}


async def reject_bill_request(
    db: AsyncSession,
    bill_request_id: UUID,
    reason: str,
    restaurant_id: Optional[UUID] = None,
) -> BillRequest:
    bill = await get_bill_request(db, bill_request_id)
    await _set_pending_bill_status(
        db, bill, "rejected", restaurant_id, rejection_reason=reason
    )
    logger.info("Bill request rejected", bill_request_id=str(bill.id), reason=reason)
    return await get_bill_request(db, bill.id)


async def initiate_payment(
    db: AsyncSession,
    bill_request_id: UUID,
    payment_method: str,
    amount: int,
    tips_amount: int,
    order_ids: Sequence[Any],
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    Create a pending payment for an accepted bill and open the provider
    transaction. The payment is marked failed when the provider call fails.
    """
    bill = await get_bill_request(db, bill_request_id)
    if bill.status != "accepted":
        raise InvalidState("Bill request must be accepted before payment")

    method = await _get_active_method(db, payment_method)
    gateway = get_payment_gateway(method.code, http_client=http_client)

    total_amount = amount + tips_amount
    payment = Payment(
        bill_request_id=bill.id,
        payment_method_id=method.id,
        amount=total_amount,
        tips_amount=tips_amount,
        merged_order_ids=[str(order_id) for order_id in order_ids],
        status="pending",
    )
    async with run_in_transaction(db):
        db.add(payment)
        await db.flush()

    payment_id = str(payment.id)
    try:
        transaction = await gateway.create_payment(
            payment_id,
            total_amount,
            {
                "order_info": f"Bill payment - {len(order_ids)} orders",
                "restaurant_id": str(bill.restaurant_id),
            },
        )
    except GatewayError as e:
        async with run_in_transaction(db):
            await db.execute(
                update(Payment)
                .where(Payment.id == payment.id, Payment.status == "pending")
                .values(status="failed", failed_reason=e.message, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
        logger.error(
            "Payment initiation failed",
            payment_id=payment_id,
            provider=method.code,
            error=e.message,
        )
        raise

    async with run_in_transaction(db):
        await db.execute(
            update(Payment)
            .where(Payment.id == payment.id)
            .values(gateway_request_id=transaction.transaction_id)
            .execution_options(synchronize_session=False)
        )

    logger.info(
        "Payment initiated",
        payment_id=payment_id,
        bill_request_id=str(bill.id),
        provider=method.code,
        amount=total_amount,
        transaction_id=transaction.transaction_id,
    )

    return {
        "payment_id": payment.id,
        "transaction_id": transaction.transaction_id,
        "qr_code": transaction.qr_code,
        "payment_url": transaction.payment_url,
    }
