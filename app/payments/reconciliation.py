"""
Gateway callback reconciliation.

Maps a verified provider callback onto the payment row and, when the payment
succeeded, closes the bill request and all of its merged orders in the same
transaction.
"""

import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from app.config import settings
from app.database import run_in_transaction
from app.errors import InvalidInput, InvalidState, NotFound
from app.models.billing import BillRequest, Payment
from app.orders.state_machine import force_complete_orders
from app.payments.gateways import BasePaymentGateway, CashGateway
from app.payments.gateways.base import CallbackOutcome, GatewayResult, ReconciliationResult

logger = structlog.get_logger()

TERMINAL_PAYMENT_STATUSES = ("completed", "failed")


async def _get_payment(db: AsyncSession, payment_id: Any) -> Optional[Payment]:
    try:
        key = payment_id if isinstance(payment_id, uuid.UUID) else uuid.UUID(str(payment_id))
    except (TypeError, ValueError):
        return None

    result = await db.execute(
        select(Payment)
        .options(selectinload(Payment.payment_method))
        .where(Payment.id == key)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def amount_matches(reported: Any, expected: int) -> bool:
    """Reported amount must be within the VND tolerance of the stored amount"""
    try:
        difference = abs(Decimal(str(reported)) - Decimal(expected))
    except (InvalidOperation, TypeError):
        return False
    return difference < settings.vnd_amount_tolerance


async def complete_bill(
    db: AsyncSession,
    bill_request_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> bool:
    """
    Complete every merged order of a bill, then the bill itself.
    Runs inside the caller's transaction.
    """
    bill = await db.get(BillRequest, bill_request_id)
    if not bill:
        logger.warning("Bill request missing for payment", bill_request_id=str(bill_request_id))
        return False

    now = now or datetime.utcnow()
    orders_completed = await force_complete_orders(db, bill.order_ids or [], now)
    await db.execute(
        update(BillRequest)
        .where(BillRequest.id == bill.id)
        .values(status="completed", updated_at=now)
        .execution_options(synchronize_session=False)
    )

    logger.info(
        "Bill completed",
        bill_request_id=str(bill.id),
        orders_completed=orders_completed,
    )
    return True


async def _apply_result(db: AsyncSession, payment: Payment, result: GatewayResult) -> bool:
    """Single terminal write of the payment plus the bill cascade; False if already settled"""
    now = datetime.utcnow()
    values = {
        "status": result.status,
        "gateway_trans_id": result.gateway_trans_id,
        "updated_at": now,
    }
    if result.status == "completed":
        values["completed_at"] = now
    else:
        values["failed_reason"] = result.failed_reason

    async with run_in_transaction(db):
        updated = await db.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status == "pending")
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if updated.rowcount != 1:
            return False

        if result.status == "completed" and payment.bill_request_id:
            await complete_bill(db, payment.bill_request_id, now)

    return True


async def reconcile_callback(
    db: AsyncSession,
    gateway: BasePaymentGateway,
    payload: Dict[str, Any],
) -> ReconciliationResult:
    """Verify, correlate and apply one provider callback"""
    provider = gateway.code

    if not gateway.verify_callback(payload):
        logger.warning("Payment callback rejected", provider=provider, reason="bad_signature")
        return ReconciliationResult(outcome=CallbackOutcome.BAD_SIGNATURE)

    payment_id = gateway.correlation_id(payload)
    payment = await _get_payment(db, payment_id)
    if not payment:
        logger.warning(
            "Payment callback rejected",
            provider=provider,
            reason="not_found",
            payment_id=payment_id,
        )
        return ReconciliationResult(outcome=CallbackOutcome.NOT_FOUND, payment_id=payment_id)

    payment_id = str(payment.id)
    result = gateway.parse_callback(payload)

    if gateway.checks_amount and not amount_matches(result.amount, payment.amount):
        logger.warning(
            "Payment callback rejected",
            provider=provider,
            reason="amount_mismatch",
            payment_id=payment_id,
            expected=payment.amount,
            reported=str(result.amount),
        )
        return ReconciliationResult(
            outcome=CallbackOutcome.AMOUNT_MISMATCH,
            payment_id=payment_id,
            payment_status=payment.status,
        )

    if payment.status in TERMINAL_PAYMENT_STATUSES:
        logger.info(
            "Duplicate payment callback ignored",
            provider=provider,
            payment_id=payment_id,
            status=payment.status,
        )
        return ReconciliationResult(
            outcome=CallbackOutcome.DUPLICATE,
            payment_id=payment_id,
            payment_status=payment.status,
        )

    if not await _apply_result(db, payment, result):
        # Another callback settled the payment after we read it
        logger.info("Duplicate payment callback ignored", provider=provider, payment_id=payment_id)
        current = await _get_payment(db, payment.id)
        return ReconciliationResult(
            outcome=CallbackOutcome.DUPLICATE,
            payment_id=payment_id,
            payment_status=current.status if current else None,
        )

    logger.info(
        "Payment callback applied",
        provider=provider,
        payment_id=payment_id,
        status=result.status,
        gateway_trans_id=result.gateway_trans_id,
    )
    outcome = CallbackOutcome.SUCCESS if result.status == "completed" else CallbackOutcome.FAILED
    return ReconciliationResult(outcome=outcome, payment_id=payment_id, payment_status=result.status)


async def confirm_cash_payment(
    db: AsyncSession,
    payment_id: uuid.UUID,
    received_amount: int,
) -> Dict[str, Any]:
    """Waiter confirms cash was collected; returns the change owed"""
    payment = await _get_payment(db, payment_id)
    if not payment:
        raise NotFound(f"Payment with ID {payment_id} not found")
    if not payment.payment_method or payment.payment_method.code != "cash":
        raise InvalidInput("Payment is not a cash payment")
    if payment.status != "pending":
        raise InvalidState(f'Payment is already "{payment.status}"')
    if received_amount < payment.amount:
        raise InvalidInput(
            f"Received amount {received_amount} is less than payment amount {payment.amount}"
        )

    result = await reconcile_callback(
        db,
        CashGateway(),
        {
            "payment_id": str(payment.id),
            "received_amount": received_amount,
            "transaction_id": payment.gateway_request_id,
        },
    )
    if result.outcome == CallbackOutcome.DUPLICATE:
        raise InvalidState(f'Payment is already "{result.payment_status}"')

    return {
        "payment_id": payment.id,
        "status": result.payment_status,
        "amount": payment.amount,
        "received_amount": received_amount,
        "change_amount": received_amount - payment.amount,
    }


async def complete_paid_bills(db: AsyncSession) -> int:
    """
    Re-run the bill cascade for completed payments whose bill never closed.
    Safe to run repeatedly.
    """
    result = await db.execute(
        select(Payment.id, Payment.bill_request_id, Payment.completed_at)
        .join(BillRequest, BillRequest.id == Payment.bill_request_id)
        .where(Payment.status == "completed", BillRequest.status != "completed")
    )
    pending = result.all()

    completed = 0
    for payment_id, bill_request_id, completed_at in pending:
        async with run_in_transaction(db):
            if await complete_bill(db, bill_request_id, completed_at):
                completed += 1
        logger.info(
            "Recovered unfinished bill",
            payment_id=str(payment_id),
            bill_request_id=str(bill_request_id),
        )

    return completed
