"""MoMo e-wallet payment gateway"""

import base64
import json
from typing import Any, Dict, Optional

import structlog

from app.config import settings
from app.errors import GatewayError
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

# Field order of the raw signature strings is fixed by MoMo
CREATE_SIGNATURE_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "ipnUrl",
    "orderId",
    "orderInfo",
    "partnerCode",
    "redirectUrl",
    "requestId",
    "requestType",
)

IPN_SIGNATURE_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "message",
    "orderId",
    "orderInfo",
    "orderType",
    "partnerCode",
    "payType",
    "requestId",
    "responseTime",
    "resultCode",
    "transId",
)


def raw_signature(fields, values: Dict[str, Any]) -> str:
    return "&".join(f"{name}={_text(values.get(name))}" for name in fields)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class MomoGateway(BasePaymentGateway):
    """MoMo captureWallet gateway"""

    code = "momo"

    def __init__(
        self,
        partner_code: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        http_client=None,
    ):
        super().__init__(http_client)
        self.partner_code = partner_code if partner_code is not None else settings.momo_partner_code
        self.access_key = access_key if access_key is not None else settings.momo_access_key
        self.secret_key = secret_key if secret_key is not None else settings.momo_secret_key
        self.endpoint = endpoint or settings.momo_endpoint

    def sign(self, fields, values: Dict[str, Any]) -> str:
        signed = dict(values, accessKey=self.access_key)
        return hmac_hex(self.secret_key, raw_signature(fields, signed))

    async def create_payment(
        self,
        payment_id: str,
        amount: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GatewayTransaction:
        metadata = metadata or {}
        extra = {"restaurant_id": metadata.get("restaurant_id")} if metadata.get("restaurant_id") else {}

        body = {
            "partnerCode": self.partner_code,
            "requestId": payment_id,
            "amount": int(amount),
            "orderId": payment_id,
            "orderInfo": metadata.get("order_info", f"Payment {payment_id}"),
            "redirectUrl": settings.momo_redirect_url,
            "ipnUrl": settings.momo_ipn_url,
            "requestType": "captureWallet",
            "extraData": base64.b64encode(json.dumps(extra).encode()).decode() if extra else "",
            "lang": "vi",
        }
        body["signature"] = self.sign(CREATE_SIGNATURE_FIELDS, body)

        logger.debug("MoMo create request", payment_id=payment_id, amount=amount)

        data = await self._post(self.endpoint, json=body)

        if data.get("resultCode") != 0:
            raise GatewayError(
                self.code,
                data.get("message", "payment creation rejected"),
                result_code=str(data.get("resultCode")),
            )

        return GatewayTransaction(
            transaction_id=payment_id,
            payment_url=data.get("payUrl"),
            qr_code=data.get("qrCodeUrl"),
            raw=data,
        )

    def verify_callback(self, payload: Dict[str, Any]) -> bool:
        expected = self.sign(IPN_SIGNATURE_FIELDS, payload)
        return signatures_match(expected, payload.get("signature"))

    def correlation_id(self, payload: Dict[str, Any]) -> Optional[str]:
        return payload.get("orderId")

    def parse_callback(self, payload: Dict[str, Any]) -> GatewayResult:
        try:
            completed = int(payload.get("resultCode")) == 0
        except (TypeError, ValueError):
            completed = False

        return GatewayResult(
            status="completed" if completed else "failed",
            gateway_trans_id=_text(payload.get("transId")) or None,
            failed_reason=None if completed else payload.get("message") or "Payment failed",
            amount=payload.get("amount"),
        )

    def acknowledge(self, result: ReconciliationResult) -> Acknowledgement:
        if result.outcome == CallbackOutcome.BAD_SIGNATURE:
            return Acknowledgement(
                body={"status": "rejected", "message": "Invalid MoMo signature"},
                status_code=400,
            )
        if result.outcome == CallbackOutcome.NOT_FOUND:
            return Acknowledgement(
                body={"status": "not_found", "message": "Payment not found"},
                status_code=404,
            )
        return Acknowledgement(
            body={"status": result.payment_status, "payment_id": result.payment_id}
        )
