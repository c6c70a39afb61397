"""
Payment Gateway Base Classes and Interfaces

Defines the contract and shared behaviour for all payment gateway adapters
in the Unified Payments API: request values, the unified success/error
envelope, unified id generation and request validation.
"""

import json
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


class PaymentGatewayType(str, Enum):
    """Supported payment gateway types."""
    STRIPE = "stripe"
    PAYSTACK = "paystack"


class ErrorCode(str, Enum):
    """Error codes produced by the adapter layer itself."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class PaymentRequest:
    """Payment or payment-intent request in gateway-neutral form."""
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    customer_email: Optional[str] = None
    description: Optional[str] = None
    payment_method_id: Optional[str] = None  # stored provider token (Stripe)
    payment_intent_id: Optional[str] = None  # pending intent to confirm (Stripe)
    callback_url: Optional[str] = None  # redirect target (Paystack)
    channel: Optional[str] = None  # restrict payment channel (Paystack)
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.amount is not None and not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))


@dataclass
class RefundRequest:
    """Refund request. Each gateway requires its own reference field."""
    payment_intent_id: Optional[str] = None  # Stripe
    transaction_reference: Optional[str] = None  # Paystack
    amount: Optional[Decimal] = None  # None refunds the full amount
    reason: Optional[str] = None

    def __post_init__(self):
        if self.amount is not None and not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))


@dataclass
class ValidationResult:
    """Outcome of local request validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass
class UnifiedResponse:
    """Successful adapter result."""
    gateway: str
    gateway_response: Dict[str, Any]
    timestamp: str
    unified_id: str
    success: bool = field(default=True, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "gateway": self.gateway,
            "gatewayResponse": self.gateway_response,
            "timestamp": self.timestamp,
            "unifiedId": self.unified_id,
        }


@dataclass
class UnifiedError:
    """Failed adapter result."""
    gateway: str
    message: str
    code: str
    timestamp: str
    unified_id: str
    details: Optional[Dict[str, Any]] = None
    success: bool = field(default=False, init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "gateway": self.gateway,
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
            "timestamp": self.timestamp,
            "unifiedId": self.unified_id,
        }


GatewayResult = Union[UnifiedResponse, UnifiedError]


@dataclass
class WebhookVerificationResult:
    """Result of webhook signature verification."""
    is_valid: bool
    event: Optional[Mapping[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"isValid": self.is_valid}
        if self.event is not None:
            result["event"] = self.event
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class GatewayFeatures:
    """Static feature flags reported with capabilities."""
    refunds: bool = True
    webhooks: bool = True
    payment_intents: bool = True
    status_checking: bool = True

    def to_dict(self) -> Dict[str, bool]:
        return {
            "refunds": self.refunds,
            "webhooks": self.webhooks,
            "paymentIntents": self.payment_intents,
            "statusChecking": self.status_checking,
        }


@dataclass
class GatewayCapabilities:
    """Capability report for a single gateway."""
    name: str
    supported_currencies: List[str]
    supported_payment_methods: List[str]
    features: GatewayFeatures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "supportedCurrencies": self.supported_currencies,
            "supportedPaymentMethods": self.supported_payment_methods,
            "features": self.features.to_dict(),
        }


class PaymentError(Exception):
    """
    Payment gateway specific errors.

    Raised inside adapters only; every public adapter method converts it
    into a UnifiedError before returning.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


def serialize_webhook_body(body: Union[bytes, str, Mapping[str, Any]]) -> bytes:
    """
    Return the exact bytes a webhook signature was computed over.

    Raw bytes and strings are used as received. A mapping that was already
    parsed is re-encoded compactly, the way providers serialize JSON.
    """
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class GatewayAdapter(ABC):
    """Abstract base class for payment gateway adapters."""

    features = GatewayFeatures()
    webhook_signature_header: str = ""

    def __init__(self, **config):
        """Initialize the payment gateway with configuration."""
        self.config = config
        self.gateway_type = self._get_gateway_type()

    @property
    def name(self) -> str:
        return self.gateway_type.value

    @abstractmethod
    def _get_gateway_type(self) -> PaymentGatewayType:
        """Return the gateway type identifier."""
        pass

    @abstractmethod
    async def process_payment(self, request: PaymentRequest) -> GatewayResult:
        """
        Process a payment.

        Args:
            request: Payment details

        Returns:
            UnifiedResponse on success, UnifiedError otherwise. Never raises.
        """
        pass

    @abstractmethod
    async def create_payment_intent(self, request: PaymentRequest) -> GatewayResult:
        """
        Create a pending provider-side payment without confirming it.

        Args:
            request: Payment details

        Returns:
            UnifiedResponse on success, UnifiedError otherwise. Never raises.
        """
        pass

    @abstractmethod
    async def process_refund(self, request: RefundRequest) -> GatewayResult:
        """
        Refund a payment, fully or partially.

        Args:
            request: Refund details; the required reference field is gateway specific

        Returns:
            UnifiedResponse on success, UnifiedError otherwise. Never raises.
        """
        pass

    @abstractmethod
    async def get_payment_status(self, payment_id: str) -> GatewayResult:
        """
        Look up the provider status of a payment.

        Args:
            payment_id: Provider payment identifier or reference

        Returns:
            UnifiedResponse whose payload always carries ``status``.
        """
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        body: Union[bytes, str, Mapping[str, Any]],
        signature: Optional[str],
    ) -> WebhookVerificationResult:
        """
        Verify a webhook signature and return the parsed event.

        Args:
            body: Raw request body as received
            signature: Value of the gateway's signature header

        Returns:
            WebhookVerificationResult. Never raises.
        """
        pass

    @abstractmethod
    def get_supported_currencies(self) -> List[str]:
        """Get list of supported currency codes."""
        pass

    @abstractmethod
    def get_supported_payment_methods(self) -> List[str]:
        """Get list of supported payment method codes."""
        pass

    def get_capabilities(self) -> GatewayCapabilities:
        return GatewayCapabilities(
            name=self.name,
            supported_currencies=self.get_supported_currencies(),
            supported_payment_methods=self.get_supported_payment_methods(),
            features=self.features,
        )

    def validate_payment_data(self, request: PaymentRequest) -> ValidationResult:
        """
        Validate the fields every gateway requires.

        Returns:
            ValidationResult listing each missing or invalid field
        """
        missing = []
        if request.amount is None:
            missing.append("amount is required")
        if not request.currency:
            missing.append("currency is required")
        if missing:
            return ValidationResult(is_valid=False, errors=missing)

        errors = []
        if not request.amount.is_finite():
            errors.append("amount must be a finite number")
        elif request.amount <= 0:
            errors.append("amount must be greater than 0")
        if not isinstance(request.currency, str) or len(request.currency) != 3:
            errors.append("currency must be a 3-letter code")

        return ValidationResult(is_valid=not errors, errors=errors)

    def validation_error(self, errors: List[str]) -> PaymentError:
        return PaymentError(
            message=f"Validation failed: {', '.join(errors)}",
            code=ErrorCode.VALIDATION_ERROR.value,
            details={"errors": list(errors)},
        )

    def format_response(self, gateway_response: Dict[str, Any]) -> UnifiedResponse:
        """Wrap a normalized provider payload in the unified success envelope."""
        return UnifiedResponse(
            gateway=self.name,
            gateway_response=gateway_response,
            timestamp=_utc_timestamp(),
            unified_id=self.generate_unified_id(),
        )

    def format_error(self, error: Exception) -> UnifiedError:
        """Convert any exception into the unified error envelope."""
        if isinstance(error, PaymentError):
            message = error.message
        else:
            message = str(error) or error.__class__.__name__

        return UnifiedError(
            gateway=self.name,
            message=message,
            code=getattr(error, "code", None) or ErrorCode.UNKNOWN_ERROR.value,
            details=getattr(error, "details", None),
            timestamp=_utc_timestamp(),
            unified_id=self.generate_unified_id(),
        )

    def generate_unified_id(self) -> str:
        """Generate ``unified_<gateway>_<base36 ms timestamp>_<5 random chars>``."""
        timestamp = _to_base36(time.time_ns() // 1_000_000)
        suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(5))
        return f"unified_{self.name}_{timestamp}_{suffix}"
