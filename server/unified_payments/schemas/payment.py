from decimal import Decimal
from typing import Any, Dict, Literal, Optional

from pydantic import EmailStr, Field

from unified_payments.integrations.payment_gateways.base import PaymentRequest, RefundRequest
from unified_payments.schemas.common import CamelModel

GatewayName = Literal["stripe", "paystack"]


class PaymentBase(CamelModel):
    gateway: GatewayName
    amount: Decimal = Field(ge=Decimal("0.01"))
    currency: str = Field(min_length=3, max_length=3)
    customer_email: Optional[EmailStr] = None
    description: Optional[str] = None
    callback_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class PaymentProcessCreate(PaymentBase):
    payment_method_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    channel: Optional[str] = None

    def to_payment_request(self) -> PaymentRequest:
        return PaymentRequest(
            amount=self.amount,
            currency=self.currency,
            customer_email=self.customer_email,
            description=self.description,
            payment_method_id=self.payment_method_id,
            payment_intent_id=self.payment_intent_id,
            callback_url=self.callback_url,
            channel=self.channel,
            metadata=self.metadata,
        )


class PaymentIntentCreate(PaymentBase):

    def to_payment_request(self) -> PaymentRequest:
        return PaymentRequest(
            amount=self.amount,
            currency=self.currency,
            customer_email=self.customer_email,
            description=self.description,
            callback_url=self.callback_url,
            metadata=self.metadata,
        )


class RefundCreate(CamelModel):
    gateway: GatewayName
    payment_intent_id: Optional[str] = None
    transaction_reference: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, ge=Decimal("0.01"))
    reason: Optional[str] = None

    def to_refund_request(self) -> RefundRequest:
        return RefundRequest(
            payment_intent_id=self.payment_intent_id,
            transaction_reference=self.transaction_reference,
            amount=self.amount,
            reason=self.reason,
        )
