"""Base payment gateway interface"""

import enum
import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import structlog

from app.config import settings
from app.errors import GatewayError

logger = structlog.get_logger()


class CallbackOutcome(str, enum.Enum):
    """What reconciling one gateway callback amounted to"""
    SUCCESS = "success"
    FAILED = "failed"
    DUPLICATE = "duplicate"
    NOT_FOUND = "not_found"
    BAD_SIGNATURE = "bad_signature"
    AMOUNT_MISMATCH = "amount_mismatch"


@dataclass
class GatewayTransaction:
    """Result of creating a provider transaction"""
    transaction_id: str
    payment_url: Optional[str] = None
    qr_code: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GatewayResult:
    """Provider callback mapped onto a payment status update"""
    status: str  # completed, failed
    gateway_trans_id: Optional[str] = None
    failed_reason: Optional[str] = None
    amount: Optional[Any] = None  # whole VND as reported, when the provider carries it


@dataclass
class ReconciliationResult:
    outcome: CallbackOutcome
    payment_id: Optional[str] = None
    payment_status: Optional[str] = None


@dataclass
class Acknowledgement:
    """HTTP status and body the provider expects back from a callback"""
    body: Dict[str, Any]
    status_code: int = 200


def hmac_hex(secret: str, data: str, digestmod=hashlib.sha256) -> str:
    return hmac.new(secret.encode("utf-8"), data.encode("utf-8"), digestmod).hexdigest()


def signatures_match(expected: str, provided: Optional[str]) -> bool:
    """Constant-time comparison of hex digests, case-insensitive"""
    if not provided:
        return False
    return hmac.compare_digest(expected.lower(), str(provided).lower())


class BasePaymentGateway(ABC):
    """Abstract base class for payment gateways"""

    code: str = ""
    checks_amount: bool = False

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.http_client = http_client

    @abstractmethod
    async def create_payment(
        self,
        payment_id: str,
        amount: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GatewayTransaction:
        """Create the provider-side transaction for a payment"""
        pass

    @abstractmethod
    def verify_callback(self, payload: Dict[str, Any]) -> bool:
        """Recompute the callback signature/MAC and compare"""
        pass

    @abstractmethod
    def correlation_id(self, payload: Dict[str, Any]) -> Optional[str]:
        """Local payment id carried by the callback"""
        pass

    @abstractmethod
    def parse_callback(self, payload: Dict[str, Any]) -> GatewayResult:
        """Map the provider result code to completed/failed"""
        pass

    @abstractmethod
    def acknowledge(self, result: ReconciliationResult) -> Acknowledgement:
        """Provider-mandated response to a callback"""
        pass

    async def _post(self, url: str, **kwargs) -> Dict[str, Any]:
        """POST to the provider and return the decoded JSON body"""
        try:
            if self.http_client is not None:
                response = await self.http_client.post(url, **kwargs)
            else:
                async with httpx.AsyncClient(
                    timeout=settings.payment_gateway_timeout_seconds
                ) as client:
                    response = await client.post(url, **kwargs)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Payment gateway request failed", provider=self.code, error=str(e))
            raise GatewayError(self.code, f"request failed: {e}")
