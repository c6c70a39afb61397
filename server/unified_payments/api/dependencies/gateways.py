from fastapi import Request

from unified_payments.core.config import Settings
from unified_payments.integrations.payment_gateways.factory import GatewayFactory


def get_gateway_factory(request: Request) -> GatewayFactory:
    """Return the factory built once by ``create_application``."""
    return request.app.state.gateway_factory


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
