"""
Health check endpoints for deployment probes
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from unified_payments import __version__
from unified_payments.api.dependencies.gateways import get_gateway_factory
from unified_payments.core.logging import get_logger
from unified_payments.core.runtime import performance_metrics, system_info
from unified_payments.integrations.payment_gateways import GatewayFactory

logger = get_logger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
async def health_check(factory: GatewayFactory = Depends(get_gateway_factory)) -> Dict[str, Any]:
    """Overall service health with gateway configuration status."""
    start_time = time.perf_counter()

    system = system_info()
    gateway_status = factory.validate_configuration()
    gateway_stats = factory.get_gateway_stats()

    response_time = (time.perf_counter() - start_time) * 1000

    return {
        "success": True,
        "status": "healthy",
        "timestamp": _now(),
        "responseTime": f"{response_time:.2f}ms",
        "version": __version__,
        "system": system,
        "gateways": {
            "status": gateway_status,
            "statistics": gateway_stats,
            "totalAvailable": gateway_stats["totalGateways"],
        },
        "endpoints": {
            "payments": "/api/payments",
            "webhooks": "/api/webhooks",
            "health": "/api/health",
        },
    }


@router.get("/gateways")
async def gateways_health(factory: GatewayFactory = Depends(get_gateway_factory)) -> Dict[str, Any]:
    available_gateways = factory.get_available_gateways()
    gateway_details: Dict[str, Any] = {}

    for gateway_name in available_gateways:
        try:
            gateway = factory.get_gateway(gateway_name)
            gateway_details[gateway_name] = {
                "status": "available",
                "capabilities": gateway.get_capabilities().to_dict(),
                "supportedCurrencies": len(gateway.get_supported_currencies()),
                "supportedPaymentMethods": len(gateway.get_supported_payment_methods()),
                "lastChecked": _now(),
            }
        except Exception as e:
            logger.error("health.gateway_check_failed", gateway=gateway_name, error=str(e))
            gateway_details[gateway_name] = {
                "status": "error",
                "error": str(e),
                "lastChecked": _now(),
            }

    return {
        "success": True,
        "timestamp": _now(),
        "totalGateways": len(available_gateways),
        "gateways": gateway_details,
        "summary": {
            "available": len(available_gateways),
            "errors": sum(1 for details in gateway_details.values() if details["status"] == "error"),
        },
    }


@router.get("/performance")
async def performance() -> Dict[str, Any]:
    """Process and host resource usage."""
    return {
        "success": True,
        "timestamp": _now(),
        "metrics": performance_metrics(),
    }


@router.get("/ready")
async def readiness_check(factory: GatewayFactory = Depends(get_gateway_factory)) -> JSONResponse:
    """Ready when at least one payment gateway is configured."""
    available_gateways = factory.get_available_gateways()

    if available_gateways:
        return JSONResponse(
            status_code=200,
            content={
                "success": True,
                "status": "ready",
                "message": "System is ready to handle requests",
                "timestamp": _now(),
                "availableGateways": available_gateways,
                "totalGateways": len(available_gateways),
            },
        )

    logger.warning("health.not_ready", reason="no_gateways_configured")
    return JSONResponse(
        status_code=503,
        content={
            "success": False,
            "status": "not_ready",
            "message": "No payment gateways are available",
            "timestamp": _now(),
            "availableGateways": [],
            "totalGateways": 0,
        },
    )


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    return {
        "success": True,
        "status": "alive",
        "timestamp": _now(),
        "message": "Service is running",
    }
