"""VNPay payment gateway"""

import hashlib
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from urllib.parse import quote_plus

import structlog

from app.config import settings
from app.payments.gateways.base import (
    Acknowledgement,
    BasePaymentGateway,
    CallbackOutcome,
    GatewayResult,
    GatewayTransaction,
    ReconciliationResult,
    hmac_hex,
    signatures_match,
)

logger = structlog.get_logger()

# VNPay timestamps are Vietnam local time
VN_TZ = timezone(timedelta(hours=7))

HASH_FIELDS = ("vnp_SecureHash", "vnp_SecureHashType")

IPN_RESPONSES = {
    CallbackOutcome.SUCCESS: ("00", "Confirm Success"),
    CallbackOutcome.FAILED: ("00", "Confirm Success"),
    CallbackOutcome.DUPLICATE: ("00", "Order already confirmed"),
    CallbackOutcome.NOT_FOUND: ("01", "Order not found"),
    CallbackOutcome.AMOUNT_MISMATCH: ("04", "Invalid amount"),
    CallbackOutcome.BAD_SIGNATURE: ("97", "Invalid signature"),
}


def build_query(params: Dict[str, Any]) -> str:
    """
    key=value pairs sorted by key, values encoded with quote_plus
    (spaces become "+"). VNPay signs exactly this string.
    """
    return "&".join(
        f"{key}={quote_plus(str(value))}" for key, value in sorted(params.items())
    )


def format_vnpay_time(moment: datetime) -> str:
    return moment.astimezone(VN_TZ).strftime("%Y%m%d%H%M%S")


class VNPayGateway(BasePaymentGateway):
    """VNPay redirect gateway (signed payment URL + IPN)"""

    code = "vnpay"
    checks_amount = True

    def __init__(
        self,
        tmn_code: Optional[str] = None,
        hash_secret: Optional[str] = None,
        payment_url: Optional[str] = None,
        return_url: Optional[str] = None,
        http_client=None,
    ):
        super().__init__(http_client)
        self.tmn_code = tmn_code if tmn_code is not None else settings.vnpay_tmn_code
        self.hash_secret = hash_secret if hash_secret is not None else settings.vnpay_hash_secret
        self.payment_url = payment_url or settings.vnpay_url
        self.return_url = return_url or settings.vnpay_return_url

    def sign(self, params: Dict[str, Any]) -> str:
        return hmac_hex(self.hash_secret, build_query(params), hashlib.sha512)

    async def create_payment(
        self,
        payment_id: str,
        amount: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GatewayTransaction:
        """Build the signed redirect URL; VNPay needs no server-to-server call"""
        metadata = metadata or {}
        now = metadata.get("now") or datetime.now(timezone.utc)

        params = {
            "vnp_Version": "2.1.0",
            "vnp_Command": "pay",
            "vnp_TmnCode": self.tmn_code,
            "vnp_Amount": int(amount) * 100,
            "vnp_CreateDate": format_vnpay_time(now),
            "vnp_CurrCode": "VND",
            "vnp_IpAddr": metadata.get("ip_address", "127.0.0.1"),
            "vnp_Locale": "vn",
            "vnp_OrderInfo": metadata.get("order_info", f"Payment {payment_id}"),
            "vnp_OrderType": "other",
            "vnp_ReturnUrl": self.return_url,
            "vnp_TxnRef": payment_id,
            "vnp_ExpireDate": format_vnpay_time(
                now + timedelta(minutes=settings.vnpay_expire_minutes)
            ),
        }

        query = build_query(params)
        secure_hash = hmac_hex(self.hash_secret, query, hashlib.sha512)

        logger.debug("VNPay payment URL built", payment_id=payment_id, amount=amount)

        return GatewayTransaction(
            transaction_id=payment_id,
            payment_url=f"{self.payment_url}?{query}&vnp_SecureHash={secure_hash}",
        )

    def verify_callback(self, payload: Dict[str, Any]) -> bool:
        provided = payload.get("vnp_SecureHash")
        signed_fields = {
            key: value
            for key, value in payload.items()
            if key.startswith("vnp_") and key not in HASH_FIELDS
        }
        return signatures_match(self.sign(signed_fields), provided)

    def correlation_id(self, payload: Dict[str, Any]) -> Optional[str]:
        return payload.get("vnp_TxnRef")

    def parse_callback(self, payload: Dict[str, Any]) -> GatewayResult:
        response_code = payload.get("vnp_ResponseCode")
        completed = response_code == "00"

        # vnp_Amount is in minor units (x100)
        try:
            amount = Decimal(str(payload.get("vnp_Amount"))) / 100
        except (InvalidOperation, TypeError):
            amount = None

        return GatewayResult(
            status="completed" if completed else "failed",
            gateway_trans_id=payload.get("vnp_TransactionNo"),
            failed_reason=None if completed else f"VNPay response code {response_code}",
            amount=amount,
        )

    def acknowledge(self, result: ReconciliationResult) -> Acknowledgement:
        code, message = IPN_RESPONSES[result.outcome]
        return Acknowledgement(body={"RspCode": code, "Message": message})
