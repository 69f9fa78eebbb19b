"""Cart collaborator used after order placement"""

from typing import Optional
from uuid import UUID

from sqlalchemy import delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import run_in_transaction
from app.models.cart import CartItem


async def clear_cart(
    db: AsyncSession,
    customer_id: Optional[UUID],
    session_id: Optional[str],
) -> int:
    """Delete the cart lines owned by a customer and/or a guest session"""
    conditions = []
    if customer_id:
        conditions.append(CartItem.customer_id == customer_id)
    if session_id:
        conditions.append(CartItem.session_id == session_id)
    if not conditions:
        return 0

    async with run_in_transaction(db):
        result = await db.execute(delete(CartItem).where(or_(*conditions)))
    return result.rowcount
