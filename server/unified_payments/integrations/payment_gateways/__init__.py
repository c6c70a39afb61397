"""
Payment gateway integration modules

Provides adapters for the supported payment processing platforms
with a consistent interface and error handling.
"""

from .base import (
    ErrorCode,
    GatewayAdapter,
    GatewayCapabilities,
    GatewayFeatures,
    GatewayResult,
    PaymentError,
    PaymentGatewayType,
    PaymentRequest,
    RefundRequest,
    UnifiedError,
    UnifiedResponse,
    ValidationResult,
    WebhookVerificationResult,
)
from .factory import GATEWAY_REGISTRY, GatewayFactory, UnsupportedGatewayError
from .paystack_adapter import PaystackAdapter
from .stripe_adapter import StripeAdapter

__all__ = [
    "ErrorCode",
    "GatewayAdapter",
    "GatewayCapabilities",
    "GatewayFeatures",
    "GatewayResult",
    "PaymentError",
    "PaymentGatewayType",
    "PaymentRequest",
    "RefundRequest",
    "UnifiedError",
    "UnifiedResponse",
    "ValidationResult",
    "WebhookVerificationResult",
    "GATEWAY_REGISTRY",
    "GatewayFactory",
    "UnsupportedGatewayError",
    "PaystackAdapter",
    "StripeAdapter",
]
