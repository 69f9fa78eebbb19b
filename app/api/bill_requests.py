"""Bill request API endpoints"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.user import User, UserRole
from app.payments import service
from app.schemas.billing import (
    BillAcceptResponse,
    BillRequestCreate,
    BillRequestReject,
    BillRequestResponse,
)
from app.api.auth import get_optional_user, require_roles, staff_restaurant_id

router = APIRouter()

waiter_only = require_roles(UserRole.WAITER, UserRole.ADMIN)


@router.post("", response_model=BillRequestResponse, status_code=201)
async def create_bill_request(
    request: BillRequestCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Customer asks for the bill"""
    if current_user and current_user.role == UserRole.CUSTOMER and not request.customer_id:
        request.customer_id = current_user.id
    return await service.create_bill_request(db, request)


@router.get("", response_model=List[BillRequestResponse])
async def list_bill_requests(
    status: Optional[str] = None,
    current_user: User = Depends(waiter_only),
    db: AsyncSession = Depends(get_db),
):
    """Bill requests of the waiter's restaurant"""
    return await service.list_bill_requests(db, staff_restaurant_id(current_user), status)


@router.get("/{bill_request_id}", response_model=BillRequestResponse)
async def get_bill_request(
    bill_request_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    return await service.get_bill_request(db, bill_request_id)


@router.post("/{bill_request_id}/accept", response_model=BillAcceptResponse)
async def accept_bill_request(
    bill_request_id: UUID,
    current_user: User = Depends(waiter_only),
    db: AsyncSession = Depends(get_db),
):
    """Accept the bill and open the payment with the chosen provider"""
    return await service.accept_bill_request(
        db, bill_request_id, staff_restaurant_id(current_user)
    )


@router.post("/{bill_request_id}/reject", response_model=BillRequestResponse)
async def reject_bill_request(
    bill_request_id: UUID,
    request: BillRequestReject,
    current_user: User = Depends(waiter_only),
    db: AsyncSession = Depends(get_db),
):
    return await service.reject_bill_request(
        db, bill_request_id, request.reason, staff_restaurant_id(current_user)
    )
