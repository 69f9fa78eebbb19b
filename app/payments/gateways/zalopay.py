"""ZaloPay payment gateway"""

import json
import time
from datetime import datetime, timedelta, timezone
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

VN_TZ = timezone(timedelta(hours=7))


def app_trans_id(payment_id: str, now: Optional[datetime] = None) -> str:
    """yymmdd_<payment id without dashes>; ZaloPay requires the date prefix"""
    now = now or datetime.now(timezone.utc)
    return f"{now.astimezone(VN_TZ):%y%m%d}_{payment_id.replace('-', '')}"


def _callback_data(payload: Dict[str, Any]) -> Dict[str, Any]:
    data = payload.get("data")
    if isinstance(data, dict):
        return data
    try:
        decoded = json.loads(data or "{}")
    except (TypeError, ValueError):
        return {}
    return decoded if isinstance(decoded, dict) else {}


class ZaloPayGateway(BasePaymentGateway):
    """ZaloPay order gateway (key1 signs requests, key2 verifies callbacks)"""

    code = "zalopay"

    def __init__(
        self,
        app_id: Optional[str] = None,
        key1: Optional[str] = None,
        key2: Optional[str] = None,
        endpoint: Optional[str] = None,
        http_client=None,
    ):
        super().__init__(http_client)
        self.app_id = app_id if app_id is not None else settings.zalopay_app_id
        self.key1 = key1 if key1 is not None else settings.zalopay_key1
        self.key2 = key2 if key2 is not None else settings.zalopay_key2
        self.endpoint = endpoint or settings.zalopay_endpoint

    def order_mac(self, order: Dict[str, Any]) -> str:
        raw = "|".join(
            str(order[name])
            for name in ("app_id", "app_trans_id", "app_user", "amount", "app_time", "embed_data", "item")
        )
        return hmac_hex(self.key1, raw)

    async def create_payment(
        self,
        payment_id: str,
        amount: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GatewayTransaction:
        metadata = metadata or {}
        trans_id = app_trans_id(payment_id, metadata.get("now"))

        order = {
            "app_id": self.app_id,
            "app_trans_id": trans_id,
            "app_user": metadata.get("app_user", "tabletop"),
            "amount": int(amount),
            "app_time": int(time.time() * 1000),
            "embed_data": json.dumps(
                {"payment_id": payment_id, "redirecturl": settings.zalopay_redirect_url}
            ),
            "item": json.dumps(metadata.get("items", [])),
            "description": metadata.get("order_info", f"Payment {payment_id}"),
            "bank_code": "",
            "callback_url": settings.zalopay_callback_url,
        }
        order["mac"] = self.order_mac(order)

        logger.debug("ZaloPay create request", payment_id=payment_id, app_trans_id=trans_id)

        data = await self._post(self.endpoint, data=order)

        if data.get("return_code") != 1:
            raise GatewayError(
                self.code,
                data.get("return_message", "payment creation rejected"),
                result_code=str(data.get("return_code")),
            )

        return GatewayTransaction(
            transaction_id=trans_id,
            payment_url=data.get("order_url"),
            qr_code=data.get("qr_code"),
            raw=data,
        )

    def verify_callback(self, payload: Dict[str, Any]) -> bool:
        data = payload.get("data")
        if not isinstance(data, str):
            return False
        return signatures_match(hmac_hex(self.key2, data), payload.get("mac"))

    def correlation_id(self, payload: Dict[str, Any]) -> Optional[str]:
        embed_data = _callback_data(payload).get("embed_data") or "{}"
        if isinstance(embed_data, str):
            try:
                embed_data = json.loads(embed_data)
            except ValueError:
                return None
        if not isinstance(embed_data, dict):
            return None
        return embed_data.get("payment_id")

    def parse_callback(self, payload: Dict[str, Any]) -> GatewayResult:
        data = _callback_data(payload)
        # A verified callback without an explicit status is a success
        completed = data.get("status", 1) == 1
        trans_id = data.get("zp_trans_id")

        return GatewayResult(
            status="completed" if completed else "failed",
            gateway_trans_id=str(trans_id) if trans_id is not None else None,
            failed_reason=None if completed else "ZaloPay reported a failed payment",
            amount=data.get("amount"),
        )

    def acknowledge(self, result: ReconciliationResult) -> Acknowledgement:
        if result.outcome == CallbackOutcome.BAD_SIGNATURE:
            return Acknowledgement(body={"return_code": -1, "return_message": "mac not equal"})
        if result.outcome == CallbackOutcome.NOT_FOUND:
            return Acknowledgement(body={"return_code": 0, "return_message": "payment not found"})
        return Acknowledgement(body={"return_code": 1, "return_message": "success"})
