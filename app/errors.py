"""Service-level error taxonomy, mapped to HTTP responses in app.main"""

from typing import Optional


class ServiceError(Exception):
    """Base class for errors raised by the ordering and payment services"""
    status_code = 400
    code = "service_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ServiceError):
    """Referenced entity does not exist"""
    status_code = 404
    code = "not_found"


class InvalidInput(ServiceError):
    """Referenced sub-entities are missing, malformed or inactive"""
    code = "invalid_input"


class InvalidState(ServiceError):
    """Entity exists but is in the wrong state for the operation"""
    code = "invalid_state"


class InvalidTransition(ServiceError):
    """Order status change is not allowed from the current status"""
    code = "invalid_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f'Invalid status transition from "{current}" to "{requested}"'
        )
        self.current = current
        self.requested = requested


class OrderConflict(ServiceError):
    """Another writer changed the order between read and write"""
    status_code = 409
    code = "order_conflict"


class TransitionConflict(OrderConflict):
    """Another writer changed the order status between read and write"""
    code = "transition_conflict"

    def __init__(self, order_id: str, expected: str, requested: str):
        super().__init__(
            f'Order {order_id} is no longer "{expected}"; '
            f'cannot move it to "{requested}". Reload and retry.'
        )
        self.expected = expected
        self.requested = requested


class Forbidden(ServiceError):
    """Staff member acting outside their restaurant"""
    status_code = 403
    code = "forbidden"


class UnsupportedPaymentMethod(ServiceError):
    """No gateway adapter exists for the payment method code"""
    code = "unsupported_payment_method"


class GatewayError(ServiceError):
    """Outbound call to a payment gateway failed"""
    status_code = 502
    code = "gateway_error"

    def __init__(self, provider: str, message: str, result_code: Optional[str] = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.result_code = result_code
