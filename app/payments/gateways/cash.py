"""Cash payments confirmed by a waiter"""

import time
from typing import Any, Dict, Optional

from app.payments.gateways.base import (
    Acknowledgement,
    BasePaymentGateway,
    GatewayResult,
    GatewayTransaction,
    ReconciliationResult,
)


class CashGateway(BasePaymentGateway):
    """No provider involved; the waiter confirming the payment is the callback"""

    code = "cash"

    async def create_payment(
        self,
        payment_id: str,
        amount: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GatewayTransaction:
        return GatewayTransaction(transaction_id=f"CASH-{int(time.time() * 1000)}")

    def verify_callback(self, payload: Dict[str, Any]) -> bool:
        # Confirmation comes from an authenticated staff request
        return True

    def correlation_id(self, payload: Dict[str, Any]) -> Optional[str]:
        return payload.get("payment_id")

    def parse_callback(self, payload: Dict[str, Any]) -> GatewayResult:
        return GatewayResult(
            status="completed",
            gateway_trans_id=payload.get("transaction_id"),
            amount=payload.get("received_amount"),
        )

    def acknowledge(self, result: ReconciliationResult) -> Acknowledgement:
        return Acknowledgement(
            body={"status": result.payment_status, "payment_id": result.payment_id}
        )
