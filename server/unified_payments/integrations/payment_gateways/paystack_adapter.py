"""
Paystack Payment Gateway Adapter

Provides integration with the Paystack REST API for the Unified Payments API.

Paystack amounts are in minor units (kobo, pesewas, cents) while this adapter
accepts and reports major units, so every amount crossing the API boundary is
converted with ``to_minor_units`` / ``from_minor_units``.
"""

import hashlib
import hmac
import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx

from unified_payments.core.logging import get_logger

from .base import (
    ErrorCode,
    GatewayAdapter,
    GatewayResult,
    PaymentError,
    PaymentGatewayType,
    PaymentRequest,
    RefundRequest,
    WebhookVerificationResult,
    serialize_webhook_body,
)

logger = get_logger(__name__)

PAYSTACK_BASE_URL = "https://api.paystack.co"
CALLBACK_PATH = "/api/payments/callback"
DEFAULT_REFUND_REASON = "requested_by_customer"

PAYSTACK_SUPPORTED_CURRENCIES = (
    "NGN", "GHS", "ZAR", "USD", "EUR", "GBP", "KES", "UGX", "TZS", "ZMW",
    "MAD", "EGP", "XOF", "XAF", "CDF", "RWF", "BIF", "DJF", "KMF", "MGA",
    "MUR", "SCR", "SZL", "MWK", "BWP", "NAD", "LSL", "STN", "AOA", "CVE",
    "GMD", "GNF",
)

PAYSTACK_SUPPORTED_PAYMENT_METHODS = (
    "card",
    "bank",
    "ussd",
    "qr",
    "mobile_money",
    "bank_transfer",
    "payattitude",
    "paga",
    "1voucher",
    "internet_banking",
    "cashenvoy",
    "providus_bank",
    "pay_with_bank",
    "pay_with_bank_transfer",
    "standard_bank",
    "zenith_bank",
    "access_bank",
    "gt_bank",
    "first_bank",
    "fidelity_bank",
    "ecobank",
    "stanbic_bank",
    "union_bank",
    "wema_bank",
    "heritage_bank",
    "keystone_bank",
    "polaris_bank",
    "unity_bank",
    "jaiz_bank",
    "stanbic_ibtc_bank",
    "diamond_bank",
    "mainstreet_bank",
    "fcmb_bank",
    "uba_bank",
)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount to Paystack minor units (x100)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(value: Any) -> Optional[Decimal]:
    """Convert a Paystack minor-unit amount back to major units (/100)."""
    if value is None:
        return None
    return (Decimal(str(value)) / 100).quantize(Decimal("0.01"))


class PaystackAdapter(GatewayAdapter):
    """Paystack payment gateway adapter."""

    webhook_signature_header = "x-paystack-signature"

    def __init__(
        self,
        secret_key: str,
        public_key: Optional[str] = None,
        base_url: str = PAYSTACK_BASE_URL,
        callback_base_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **config
    ):
        """
        Initialize Paystack adapter.

        Args:
            secret_key: Paystack secret key, also the webhook signing key
            public_key: Paystack public key
            base_url: Paystack API base URL
            callback_base_url: Base URL used for the default callback URL
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (used by tests)
            **config: Additional configuration
        """
        super().__init__(
            secret_key=secret_key,
            public_key=public_key,
            base_url=base_url,
            callback_base_url=callback_base_url,
            **config
        )
        self.secret_key = secret_key
        self.public_key = public_key
        self.base_url = base_url.rstrip("/")
        self.callback_base_url = (callback_base_url or "").rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _get_gateway_type(self) -> PaymentGatewayType:
        """Return the gateway type identifier."""
        return PaymentGatewayType.PAYSTACK

    async def _make_request(
        self,
        endpoint: str,
        method: str = "GET",
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Make an authenticated request to the Paystack API.

        Each call opens its own client, so there is nothing to close.

        Raises:
            PaymentError: On transport failure or any non-success response
        """
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }
        payload = data if method in ("POST", "PUT") else None

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(method, endpoint, json=payload)
        except httpx.HTTPError as e:
            raise PaymentError(
                message=f"Paystack request failed: {e}",
                code=ErrorCode.UNKNOWN_ERROR.value,
            ) from e

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        if response.is_error or result.get("status") is False:
            details = {"statusCode": response.status_code}
            if result.get("type"):
                details["type"] = result["type"]
            raise PaymentError(
                message=result.get("message") or f"Paystack API error: {response.status_code}",
                code=result.get("code") or ErrorCode.UNKNOWN_ERROR.value,
                details=details,
            )

        return result

    async def process_payment(self, request: PaymentRequest) -> GatewayResult:
        """
        Initialize a Paystack transaction.

        The customer completes payment on Paystack's hosted page, so the
        returned status is always ``pending``.
        """
        try:
            self._ensure_valid(request, "payments")

            transaction_data = self._build_transaction_data(request)
            if request.channel:
                transaction_data["channels"] = [request.channel]

            transaction = await self._make_request("/transaction/initialize", "POST", transaction_data)

            logger.info("paystack.transaction_initialized", reference=transaction_data["reference"])
            return self.format_response(self._initialized_payload(transaction, request))

        except PaymentError as e:
            logger.warning("paystack.payment_failed", error=e.message, code=e.code)
            return self.format_error(e)
        except Exception as e:
            logger.error("paystack.payment_unexpected_error", error=str(e))
            return self.format_error(e)

    async def create_payment_intent(self, request: PaymentRequest) -> GatewayResult:
        """Initialize a transaction awaiting customer redirect."""
        try:
            self._ensure_valid(request, "payment intents")

            transaction_data = self._build_transaction_data(request)
            transaction = await self._make_request("/transaction/initialize", "POST", transaction_data)

            return self.format_response(self._initialized_payload(transaction, request))

        except PaymentError as e:
            logger.warning("paystack.intent_failed", error=e.message, code=e.code)
            return self.format_error(e)
        except Exception as e:
            logger.error("paystack.intent_unexpected_error", error=str(e))
            return self.format_error(e)

    async def process_refund(self, request: RefundRequest) -> GatewayResult:
        """
        Refund a Paystack transaction.

        ``transaction_reference`` is required; ``amount`` is in major units
        and refunds the full transaction when omitted.
        """
        try:
            if not request.transaction_reference:
                raise PaymentError(
                    message="transactionReference is required for Paystack refunds",
                    code=ErrorCode.VALIDATION_ERROR.value,
                )

            refund_payload: Dict[str, Any] = {
                "transaction": request.transaction_reference,
                "merchant_note": request.reason or DEFAULT_REFUND_REASON,
            }
            if request.amount is not None:
                refund_payload["amount"] = to_minor_units(request.amount)

            refund = await self._make_request("/refund", "POST", refund_payload)
            data = refund.get("data") or {}
            transaction = data.get("transaction")
            reference = transaction.get("reference") if isinstance(transaction, dict) else None

            logger.info("paystack.refund_processed", reference=request.transaction_reference)
            return self.format_response({
                "refundId": data.get("id"),
                "status": data.get("status"),
                "amount": from_minor_units(data.get("amount")),
                "currency": data.get("currency"),
                "reference": reference or request.transaction_reference,
            })

        except PaymentError as e:
            logger.warning("paystack.refund_failed", error=e.message, code=e.code)
            return self.format_error(e)
        except Exception as e:
            logger.error("paystack.refund_unexpected_error", error=str(e))
            return self.format_error(e)

    async def get_payment_status(self, payment_id: str) -> GatewayResult:
        """Verify a transaction by reference."""
        try:
            if not payment_id:
                raise PaymentError(
                    message="Payment reference is required",
                    code=ErrorCode.VALIDATION_ERROR.value,
                )

            transaction = await self._make_request(f"/transaction/verify/{payment_id}")
            data = transaction.get("data") or {}

            return self.format_response({
                "status": data.get("status"),
                "amount": from_minor_units(data.get("amount")),
                "currency": data.get("currency"),
                "reference": data.get("reference"),
                "gatewayResponse": data.get("gateway_response"),
                "channel": data.get("channel"),
                "paidAt": data.get("paid_at"),
                "createdAt": data.get("created_at"),
            })

        except PaymentError as e:
            logger.warning("paystack.status_failed", error=e.message, code=e.code)
            return self.format_error(e)
        except Exception as e:
            logger.error("paystack.status_unexpected_error", error=str(e))
            return self.format_error(e)

    async def verify_webhook(
        self,
        body: Union[bytes, str, Mapping[str, Any]],
        signature: Optional[str],
    ) -> WebhookVerificationResult:
        """
        Verify a Paystack webhook.

        The signature is the hex HMAC-SHA512 of the raw body keyed with the
        secret key.
        """
        if not signature:
            return WebhookVerificationResult(is_valid=False, error="No signature provided")

        try:
            raw_body = serialize_webhook_body(body)
            expected = hmac.new(
                self.secret_key.encode("utf-8"),
                raw_body,
                hashlib.sha512,
            ).hexdigest()

            if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
                return WebhookVerificationResult(is_valid=False, error="Invalid webhook signature")

            event = body if isinstance(body, Mapping) else json.loads(raw_body)
            return WebhookVerificationResult(is_valid=True, event=event)

        except Exception as e:
            logger.warning("paystack.webhook_verification_failed", error=str(e))
            return WebhookVerificationResult(is_valid=False, error=str(e))

    def get_supported_currencies(self) -> List[str]:
        """Get list of supported currencies for Paystack (upper-case ISO codes)."""
        return list(PAYSTACK_SUPPORTED_CURRENCIES)

    def get_supported_payment_methods(self) -> List[str]:
        """Get list of supported payment channels for Paystack."""
        return list(PAYSTACK_SUPPORTED_PAYMENT_METHODS)

    def _ensure_valid(self, request: PaymentRequest, operation: str) -> None:
        validation = self.validate_payment_data(request)
        if not validation.is_valid:
            raise self.validation_error(validation.errors)

        # Paystack identifies the payer by email.
        if not request.customer_email:
            raise PaymentError(
                message=f"customerEmail is required for Paystack {operation}",
                code=ErrorCode.VALIDATION_ERROR.value,
            )

    def _build_transaction_data(self, request: PaymentRequest) -> Dict[str, Any]:
        reference = self.generate_unified_id()
        metadata: Dict[str, Any] = {
            "unified_payment_id": reference,
            "customer_email": request.customer_email,
        }
        if request.metadata:
            metadata.update(request.metadata)

        return {
            "amount": to_minor_units(request.amount),
            "email": request.customer_email,
            "currency": request.currency.upper(),
            "reference": reference,
            "callback_url": request.callback_url or f"{self.callback_base_url}{CALLBACK_PATH}",
            "metadata": metadata,
        }

    def _initialized_payload(
        self,
        transaction: Dict[str, Any],
        request: PaymentRequest,
    ) -> Dict[str, Any]:
        data = transaction.get("data") or {}
        return {
            "transactionId": data.get("id"),
            "reference": data.get("reference"),
            "authorizationUrl": data.get("authorization_url"),
            "accessCode": data.get("access_code"),
            "status": "pending",
            "amount": request.amount,
            "currency": request.currency,
        }
