"""
Payment endpoints and gateway callbacks.

Callbacks answer with each provider's own acknowledgment body, never the
generic error shape, since the caller is the provider's retry loop.
"""

from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.api.auth import require_roles
from app.database import get_db
from app.errors import NotFound
from app.models.billing import Payment
from app.models.user import User, UserRole
from app.payments.gateways import get_payment_gateway
from app.payments.reconciliation import confirm_cash_payment, reconcile_callback
from app.payments.service import list_payment_methods
from app.schemas.billing import (
    CashConfirmRequest,
    CashConfirmResponse,
    PaymentMethodResponse,
    PaymentResponse,
)

router = APIRouter()
logger = structlog.get_logger()


async def _json_payload(request: Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


async def _handle_callback(db: AsyncSession, code: str, payload: Dict[str, Any]) -> JSONResponse:
    gateway = get_payment_gateway(code)
    result = await reconcile_callback(db, gateway, payload)
    ack = gateway.acknowledge(result)
    logger.info(
        "Payment callback handled",
        provider=code,
        outcome=result.outcome.value,
        payment_id=result.payment_id,
    )
    return JSONResponse(status_code=ack.status_code, content=ack.body)


@router.get("/methods", response_model=List[PaymentMethodResponse])
async def payment_methods(db: AsyncSession = Depends(get_db)):
    """Active payment methods"""
    return await list_payment_methods(db)


@router.get("/vnpay/ipn")
async def vnpay_ipn(request: Request, db: AsyncSession = Depends(get_db)):
    """VNPay server-to-server notification (query string)"""
    return await _handle_callback(db, "vnpay", dict(request.query_params))


@router.post("/momo/ipn")
async def momo_ipn(request: Request, db: AsyncSession = Depends(get_db)):
    """MoMo instant payment notification"""
    return await _handle_callback(db, "momo", await _json_payload(request))


@router.post("/zalopay/callback")
async def zalopay_callback(request: Request, db: AsyncSession = Depends(get_db)):
    """ZaloPay payment callback"""
    return await _handle_callback(db, "zalopay", await _json_payload(request))


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: UUID, db: AsyncSession = Depends(get_db)):
    """Payment status, polled by the customer after the provider redirect"""
    payment = await db.get(Payment, payment_id, populate_existing=True)
    if not payment:
        raise NotFound(f"Payment with ID {payment_id} not found")
    return payment


@router.post("/{payment_id}/cash/confirm", response_model=CashConfirmResponse)
async def confirm_cash(
    payment_id: UUID,
    request: CashConfirmRequest,
    current_user: User = Depends(require_roles(UserRole.WAITER, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Waiter confirms the cash was collected"""
    result = await confirm_cash_payment(db, payment_id, request.received_amount)
    logger.info(
        "Cash payment confirmed",
        payment_id=str(payment_id),
        waiter_id=str(current_user.id),
        change_amount=result["change_amount"],
    )
    return result
