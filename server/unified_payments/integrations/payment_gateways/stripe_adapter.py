"""
Stripe Payment Gateway Adapter

Provides integration with the Stripe payment processing platform
for the Unified Payments API.
"""

from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

import stripe
from stripe import StripeClient, StripeError, StripeObject

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

DEFAULT_PAYMENT_DESCRIPTION = "Payment via Unified Payments API"
DEFAULT_INTENT_DESCRIPTION = "Payment intent via Unified Payments API"
DEFAULT_REFUND_REASON = "requested_by_customer"

STRIPE_SUPPORTED_CURRENCIES = (
    "usd", "aed", "afn", "all", "amd", "ang", "aoa", "ars", "aud", "awg",
    "azn", "bam", "bbd", "bdt", "bgn", "bhd", "bif", "bmd", "bnd", "bob",
    "brl", "bsd", "bwp", "byn", "bzd", "cad", "cdf", "chf", "clp", "cny",
    "cop", "crc", "cve", "czk", "djf", "dkk", "dop", "dzd", "egp", "etb",
    "eur", "fjd", "fkp", "gbp", "gel", "gip", "gmd", "gnf", "gtq", "gyd",
    "hkd", "hnl", "htg", "huf", "idr", "ils", "inr", "isk", "jmd", "jod",
    "jpy", "kes", "kgs", "khr", "kmf", "krw", "kwd", "kyd", "kzt", "lak",
    "lbp", "lkr", "lrd", "lsl", "mad", "mdl", "mga", "mkd", "mmk", "mnt",
    "mop", "mur", "mvr", "mwk", "mxn", "myr", "mzn", "nad", "ngn", "nio",
    "nok", "npr", "nzd", "omr", "pab", "pen", "pgk", "php", "pkr", "pln",
    "pyg", "qar", "ron", "rsd", "rub", "rwf", "sar", "sbd", "scr", "sek",
    "sgd", "shp", "sle", "sos", "srd", "std", "szl", "thb", "tjs", "tnd",
    "top", "try", "ttd", "twd", "tzs", "uah", "ugx", "uyu", "uzs", "vnd",
    "vuv", "wst", "xaf", "xcd", "xof", "xpf", "yer", "zar", "zmw",
)

STRIPE_SUPPORTED_PAYMENT_METHODS = (
    "card",
    "bank_transfer",
    "sepa_debit",
    "sofort",
    "ideal",
    "bancontact",
    "eps",
    "giropay",
    "p24",
    "alipay",
    "wechat_pay",
    "klarna",
    "affirm",
    "afterpay_clearpay",
)


def _plain(value: Any) -> Any:
    """Nested Stripe objects are not mappings; hand them out as plain dicts."""
    if isinstance(value, StripeObject):
        return value.to_dict()
    return value


class StripeAdapter(GatewayAdapter):
    """Stripe payment gateway adapter."""

    webhook_signature_header = "stripe-signature"

    def __init__(
        self,
        secret_key: str,
        publishable_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        **config
    ):
        """
        Initialize Stripe adapter.

        Args:
            secret_key: Stripe secret API key
            publishable_key: Stripe publishable key
            webhook_secret: Stripe webhook signing secret
            **config: Additional configuration
        """
        super().__init__(
            secret_key=secret_key,
            publishable_key=publishable_key,
            webhook_secret=webhook_secret,
            **config
        )
        # Failed calls surface immediately; no SDK-level retries.
        self.client = StripeClient(secret_key, max_network_retries=0)
        self.publishable_key = publishable_key
        self.webhook_secret = webhook_secret

    def _get_gateway_type(self) -> PaymentGatewayType:
        """Return the gateway type identifier."""
        return PaymentGatewayType.STRIPE

    async def process_payment(self, request: PaymentRequest) -> GatewayResult:
        """
        Process a payment using Stripe Payment Intents.

        A stored payment method is created and confirmed in one call; an
        existing intent id is confirmed; otherwise an unconfirmed intent is
        created. The payment method takes priority over the intent id.
        """
        try:
            self._ensure_valid(request)
            amount = self._to_stripe_amount(request.amount)

            if request.payment_method_id:
                params = self._build_intent_params(request, amount, DEFAULT_PAYMENT_DESCRIPTION)
                params["payment_method"] = request.payment_method_id
                params["confirm"] = True
                payment_intent = await self.client.v1.payment_intents.create_async(params)
            elif request.payment_intent_id:
                payment_intent = await self.client.v1.payment_intents.confirm_async(
                    request.payment_intent_id
                )
            else:
                params = self._build_intent_params(request, amount, DEFAULT_PAYMENT_DESCRIPTION)
                payment_intent = await self.client.v1.payment_intents.create_async(params)

            logger.info(
                "stripe.payment_processed",
                payment_intent_id=payment_intent.id,
                status=payment_intent.status,
            )
            return self.format_response({
                "paymentIntentId": payment_intent.id,
                "status": payment_intent.status,
                "amount": payment_intent.amount,
                "currency": payment_intent.currency,
                "clientSecret": getattr(payment_intent, "client_secret", None),
                "requiresAction": payment_intent.status == "requires_action",
                "nextAction": _plain(getattr(payment_intent, "next_action", None)),
            })

        except PaymentError as e:
            logger.warning("stripe.payment_rejected", error=e.message)
            return self.format_error(e)
        except StripeError as e:
            logger.error("stripe.payment_failed", error=str(e), code=e.code)
            return self.format_error(self._to_payment_error(e))
        except Exception as e:
            logger.error("stripe.payment_unexpected_error", error=str(e))
            return self.format_error(e)

    async def create_payment_intent(self, request: PaymentRequest) -> GatewayResult:
        """Create an unconfirmed Stripe payment intent."""
        try:
            self._ensure_valid(request)
            amount = self._to_stripe_amount(request.amount)

            params = self._build_intent_params(request, amount, DEFAULT_INTENT_DESCRIPTION)
            payment_intent = await self.client.v1.payment_intents.create_async(params)

            return self.format_response({
                "paymentIntentId": payment_intent.id,
                "clientSecret": getattr(payment_intent, "client_secret", None),
                "status": payment_intent.status,
                "amount": payment_intent.amount,
                "currency": payment_intent.currency,
            })

        except PaymentError as e:
            logger.warning("stripe.intent_rejected", error=e.message)
            return self.format_error(e)
        except StripeError as e:
            logger.error("stripe.intent_failed", error=str(e), code=e.code)
            return self.format_error(self._to_payment_error(e))
        except Exception as e:
            logger.error("stripe.intent_unexpected_error", error=str(e))
            return self.format_error(e)

    async def process_refund(self, request: RefundRequest) -> GatewayResult:
        """
        Refund a Stripe payment intent.

        ``payment_intent_id`` is required. ``amount`` is in minor units and
        refunds the full charge when omitted.
        """
        try:
            if not request.payment_intent_id:
                raise PaymentError(
                    message="paymentIntentId is required for refunds",
                    code=ErrorCode.VALIDATION_ERROR.value,
                )

            metadata = {"unified_refund_id": self.generate_unified_id()}
            if request.reason:
                metadata["reason"] = request.reason

            params: Dict[str, Any] = {
                "payment_intent": request.payment_intent_id,
                "reason": request.reason or DEFAULT_REFUND_REASON,
                "metadata": metadata,
            }
            if request.amount is not None:
                params["amount"] = self._to_stripe_amount(request.amount)

            refund = await self.client.v1.refunds.create_async(params)

            logger.info("stripe.refund_processed", refund_id=refund.id, status=refund.status)
            return self.format_response({
                "refundId": refund.id,
                "status": refund.status,
                "amount": refund.amount,
                "currency": refund.currency,
            })

        except PaymentError as e:
            logger.warning("stripe.refund_rejected", error=e.message)
            return self.format_error(e)
        except StripeError as e:
            logger.error("stripe.refund_failed", error=str(e), code=e.code)
            return self.format_error(self._to_payment_error(e))
        except Exception as e:
            logger.error("stripe.refund_unexpected_error", error=str(e))
            return self.format_error(e)

    async def get_payment_status(self, payment_id: str) -> GatewayResult:
        """Retrieve a payment intent; the last payment error is returned verbatim."""
        try:
            if not payment_id:
                raise PaymentError(
                    message="Payment intent id is required",
                    code=ErrorCode.VALIDATION_ERROR.value,
                )

            payment_intent = await self.client.v1.payment_intents.retrieve_async(payment_id)

            return self.format_response({
                "status": payment_intent.status,
                "amount": payment_intent.amount,
                "currency": payment_intent.currency,
                "created": getattr(payment_intent, "created", None),
                "lastPaymentError": _plain(getattr(payment_intent, "last_payment_error", None)),
            })

        except PaymentError as e:
            return self.format_error(e)
        except StripeError as e:
            logger.error("stripe.status_failed", error=str(e), code=e.code)
            return self.format_error(self._to_payment_error(e))
        except Exception as e:
            logger.error("stripe.status_unexpected_error", error=str(e))
            return self.format_error(e)

    async def verify_webhook(
        self,
        body: Union[bytes, str, Mapping[str, Any]],
        signature: Optional[str],
    ) -> WebhookVerificationResult:
        """Verify a Stripe webhook with the SDK's signature check."""
        if not signature:
            return WebhookVerificationResult(is_valid=False, error="No signature provided")

        if not self.webhook_secret:
            return WebhookVerificationResult(is_valid=False, error="Webhook secret not configured")

        try:
            event = stripe.Webhook.construct_event(
                serialize_webhook_body(body),
                signature,
                self.webhook_secret,
            )
            return WebhookVerificationResult(is_valid=True, event=event.to_dict())

        except Exception as e:
            logger.warning("stripe.webhook_verification_failed", error=str(e))
            return WebhookVerificationResult(is_valid=False, error=str(e))

    def get_supported_currencies(self) -> List[str]:
        """Get list of supported currencies for Stripe (lower-case ISO codes)."""
        return list(STRIPE_SUPPORTED_CURRENCIES)

    def get_supported_payment_methods(self) -> List[str]:
        """Get list of supported payment method types for Stripe."""
        return list(STRIPE_SUPPORTED_PAYMENT_METHODS)

    def _ensure_valid(self, request: PaymentRequest) -> None:
        validation = self.validate_payment_data(request)
        if not validation.is_valid:
            raise self.validation_error(validation.errors)

    def _to_stripe_amount(self, amount: Decimal) -> int:
        """Amounts are already in minor units; only integral values are accepted."""
        if amount != amount.to_integral_value():
            raise self.validation_error(["amount must be an integer in the smallest currency unit"])
        return int(amount)

    def _build_intent_params(
        self,
        request: PaymentRequest,
        amount: int,
        default_description: str,
    ) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"unified_payment_id": self.generate_unified_id()}
        if request.customer_email:
            metadata["customer_email"] = request.customer_email
        if request.metadata:
            metadata.update(request.metadata)

        return {
            "amount": amount,
            "currency": request.currency.lower(),
            "description": request.description or default_description,
            "metadata": metadata,
        }

    def _to_payment_error(self, error: StripeError) -> PaymentError:
        """Translate a Stripe SDK error, keeping Stripe's own code and message."""
        body = error.json_body.get("error") if isinstance(error.json_body, dict) else None
        body = body if isinstance(body, dict) else {}

        details = {
            "type": body.get("type"),
            "param": getattr(error, "param", None) or body.get("param"),
            "declineCode": body.get("decline_code"),
            "httpStatus": error.http_status,
        }
        details = {key: value for key, value in details.items() if value is not None}

        return PaymentError(
            message=error.user_message or str(error) or "Stripe request failed",
            code=error.code or ErrorCode.UNKNOWN_ERROR.value,
            details=details or None,
        )
