from unified_payments.schemas.common import CamelModel
from unified_payments.schemas.payment import (
    GatewayName,
    PaymentIntentCreate,
    PaymentProcessCreate,
    RefundCreate,
)

__all__ = [
    "CamelModel",
    "GatewayName",
    "PaymentIntentCreate",
    "PaymentProcessCreate",
    "RefundCreate",
]
