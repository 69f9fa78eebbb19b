"""Payment gateway adapters and factory"""

from typing import Optional

import httpx

from app.errors import UnsupportedPaymentMethod
from app.payments.gateways.base import (
    Acknowledgement,
    BasePaymentGateway,
    CallbackOutcome,
    GatewayResult,
    GatewayTransaction,
    ReconciliationResult,
)
from app.payments.gateways.cash import CashGateway
from app.payments.gateways.momo import MomoGateway
from app.payments.gateways.vnpay import VNPayGateway
from app.payments.gateways.zalopay import ZaloPayGateway

GATEWAYS = {
    "vnpay": VNPayGateway,
    "momo": MomoGateway,
    "zalopay": ZaloPayGateway,
    "cash": CashGateway,
}


def get_payment_gateway(
    code: str,
    http_client: Optional[httpx.AsyncClient] = None,
) -> BasePaymentGateway:
    """Get a gateway adapter by payment method code (case-insensitive)"""
    gateway_class = GATEWAYS.get((code or "").lower())
    if not gateway_class:
        raise UnsupportedPaymentMethod(f"Unsupported payment method: {code}")
    return gateway_class(http_client=http_client)


__all__ = [
    "Acknowledgement",
    "BasePaymentGateway",
    "CallbackOutcome",
    "CashGateway",
    "GATEWAYS",
    "GatewayResult",
    "GatewayTransaction",
    "MomoGateway",
    "ReconciliationResult",
    "VNPayGateway",
    "ZaloPayGateway",
    "get_payment_gateway",
]
