"""
Webhook receivers.

Providers sign the exact bytes they send, so every endpoint reads the raw
request body and hands it to the adapter unparsed.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from unified_payments.api.dependencies.gateways import get_gateway_factory
from unified_payments.core.logging import get_logger
from unified_payments.integrations.payment_gateways import (
    GatewayAdapter,
    GatewayFactory,
    PaymentGatewayType,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/webhooks", tags=["webhooks"])

STRIPE_EVENT_LOGS = {
    "payment_intent.succeeded": "webhook.stripe.payment_succeeded",
    "payment_intent.payment_failed": "webhook.stripe.payment_failed",
    "charge.refunded": "webhook.stripe.refund_processed",
}

PAYSTACK_EVENT_LOGS = {
    "charge.success": "webhook.paystack.payment_succeeded",
    "charge.failed": "webhook.paystack.payment_failed",
    "transfer.success": "webhook.paystack.transfer_succeeded",
    "refund.processed": "webhook.paystack.refund_processed",
}


def _lookup(obj: Any, *keys: str) -> Any:
    for key in keys:
        try:
            obj = obj[key]
        except (KeyError, TypeError, IndexError):
            return None
    return obj


def _event_type(gateway: str, event: Any) -> Optional[str]:
    if gateway == PaymentGatewayType.STRIPE.value:
        return _lookup(event, "type")
    return _lookup(event, "event")


def _log_event(gateway: str, event: Any) -> Optional[str]:
    event_type = _event_type(gateway, event)

    if gateway == PaymentGatewayType.STRIPE.value:
        log_name = STRIPE_EVENT_LOGS.get(event_type)
        object_id = _lookup(event, "data", "object", "id")
        if log_name:
            logger.info(log_name, object_id=object_id)
        else:
            logger.info("webhook.stripe.unhandled_event", event_type=event_type)
    else:
        log_name = PAYSTACK_EVENT_LOGS.get(event_type)
        reference = _lookup(event, "data", "reference")
        if log_name:
            logger.info(log_name, reference=reference)
        else:
            logger.info("webhook.paystack.unhandled_event", event_type=event_type)

    return event_type


def _require_gateway(factory: GatewayFactory, gateway: str) -> GatewayAdapter:
    if not factory.is_gateway_available(gateway):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Gateway '{gateway}' is not available or not configured",
        )
    return factory.get_gateway(gateway)


async def _verify(adapter: GatewayAdapter, body: bytes, signature: Optional[str]) -> Any:
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No signature provided",
        )

    verification = await adapter.verify_webhook(body, signature)
    if not verification.is_valid:
        logger.warning("webhook.invalid_signature", gateway=adapter.name, error=verification.error)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook signature",
        )
    return verification.event


async def _handle_gateway_webhook(request: Request, factory: GatewayFactory, gateway: str) -> Dict[str, Any]:
    adapter = _require_gateway(factory, gateway)
    body = await request.body()
    event = await _verify(adapter, body, request.headers.get(adapter.webhook_signature_header))
    event_type = _log_event(adapter.name, event)

    return {
        "success": True,
        "message": "Webhook processed successfully",
        "eventType": event_type,
    }


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    factory: GatewayFactory = Depends(get_gateway_factory),
) -> Dict[str, Any]:
    return await _handle_gateway_webhook(request, factory, PaymentGatewayType.STRIPE.value)


@router.post("/paystack")
async def paystack_webhook(
    request: Request,
    factory: GatewayFactory = Depends(get_gateway_factory),
) -> Dict[str, Any]:
    return await _handle_gateway_webhook(request, factory, PaymentGatewayType.PAYSTACK.value)


@router.post("/unified")
async def unified_webhook(
    request: Request,
    gateway: Optional[str] = Query(default=None),
    factory: GatewayFactory = Depends(get_gateway_factory),
) -> Dict[str, Any]:
    """
    Route a webhook to the gateway named in ``?gateway=`` or in the body's
    ``gateway`` field.
    """
    body = await request.body()

    if not gateway:
        try:
            gateway = _lookup(json.loads(body), "gateway")
        except ValueError:
            gateway = None

    if not gateway or not isinstance(gateway, str):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Gateway parameter is required",
        )

    if not factory.is_gateway_available(gateway):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Gateway '{gateway}' is not supported",
        )

    adapter = factory.get_gateway(gateway)
    event = await _verify(adapter, body, request.headers.get(adapter.webhook_signature_header))
    event_type = _log_event(adapter.name, event)

    return {
        "success": True,
        "message": "Unified webhook processed successfully",
        "gateway": adapter.name,
        "eventType": event_type,
    }


@router.get("/health")
async def webhooks_health(factory: GatewayFactory = Depends(get_gateway_factory)) -> Dict[str, Any]:
    available_gateways = factory.get_available_gateways()
    return {
        "success": True,
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "availableWebhookEndpoints": [f"/api/webhooks/{name}" for name in available_gateways],
        "unifiedEndpoint": "/api/webhooks/unified",
        "totalGateways": len(available_gateways),
    }
