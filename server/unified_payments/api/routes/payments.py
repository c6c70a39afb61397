from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from unified_payments import __version__
from unified_payments.api.dependencies.auth import require_api_key
from unified_payments.api.dependencies.gateways import get_gateway_factory
from unified_payments.core.runtime import process_memory, process_uptime
from unified_payments.integrations.payment_gateways import GatewayAdapter, GatewayFactory, GatewayResult
from unified_payments.schemas.payment import PaymentIntentCreate, PaymentProcessCreate, RefundCreate

router = APIRouter(prefix="/payments", tags=["payments"])


def _resolve_gateway(factory: GatewayFactory, gateway: str) -> GatewayAdapter:
    if not factory.is_gateway_available(gateway):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Gateway '{gateway}' is not available or not configured",
        )
    return factory.get_gateway(gateway)


def _envelope_response(result: GatewayResult) -> JSONResponse:
    status_code = status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=status_code, content=jsonable_encoder(result.to_dict()))


@router.post("/process")
async def process_payment_endpoint(
    payload: PaymentProcessCreate,
    factory: GatewayFactory = Depends(get_gateway_factory),
    _api_key: str = Depends(require_api_key),
) -> JSONResponse:
    adapter = _resolve_gateway(factory, payload.gateway)
    result = await adapter.process_payment(payload.to_payment_request())
    return _envelope_response(result)


@router.post("/intent")
async def create_payment_intent_endpoint(
    payload: PaymentIntentCreate,
    factory: GatewayFactory = Depends(get_gateway_factory),
    _api_key: str = Depends(require_api_key),
) -> JSONResponse:
    adapter = _resolve_gateway(factory, payload.gateway)
    result = await adapter.create_payment_intent(payload.to_payment_request())
    return _envelope_response(result)


@router.post("/refund")
async def process_refund_endpoint(
    payload: RefundCreate,
    factory: GatewayFactory = Depends(get_gateway_factory),
    _api_key: str = Depends(require_api_key),
) -> JSONResponse:
    adapter = _resolve_gateway(factory, payload.gateway)
    result = await adapter.process_refund(payload.to_refund_request())
    return _envelope_response(result)


@router.get("/status/{gateway}/{payment_id}")
async def payment_status_endpoint(
    gateway: str,
    payment_id: str,
    factory: GatewayFactory = Depends(get_gateway_factory),
    _api_key: str = Depends(require_api_key),
) -> JSONResponse:
    adapter = _resolve_gateway(factory, gateway)
    result = await adapter.get_payment_status(payment_id)
    return _envelope_response(result)


@router.get("/gateways")
async def list_gateways(factory: GatewayFactory = Depends(get_gateway_factory)) -> Dict[str, Any]:
    """Available gateways and their capabilities."""
    stats = factory.get_gateway_stats()
    return {
        "success": True,
        "data": {
            "capabilities": {
                name: capabilities.to_dict()
                for name, capabilities in factory.get_all_gateway_capabilities().items()
            },
            "statistics": stats,
            "totalGateways": stats["totalGateways"],
            "availableGateways": stats["availableGateways"],
        },
    }


@router.get("/gateways/{gateway}")
async def get_gateway_details(
    gateway: str,
    factory: GatewayFactory = Depends(get_gateway_factory),
) -> Dict[str, Any]:
    if not factory.is_gateway_available(gateway):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Gateway '{gateway}' not found",
        )
    return {"success": True, "data": factory.get_gateway_capabilities(gateway).to_dict()}


@router.get("/health")
async def payments_health(factory: GatewayFactory = Depends(get_gateway_factory)) -> Dict[str, Any]:
    return {
        "success": True,
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "configuration": factory.validate_configuration(),
        "statistics": factory.get_gateway_stats(),
        "uptime": process_uptime(),
        "memory": process_memory(),
        "version": __version__,
    }
