"""
Payment gateway factory.

Builds the adapters whose credentials are configured, looks them up by name
and reports capabilities and configuration health. One instance is created
at application start-up and shared by the HTTP layer.
"""

from typing import Any, Dict, List, Optional, Type

from unified_payments.core.config import Settings
from unified_payments.core.logging import get_logger

from .base import GatewayAdapter, GatewayCapabilities, PaymentGatewayType
from .paystack_adapter import PaystackAdapter
from .stripe_adapter import StripeAdapter

logger = get_logger(__name__)

# Gateways this service knows how to talk to
GATEWAY_REGISTRY: Dict[str, Type[GatewayAdapter]] = {
    PaymentGatewayType.STRIPE.value: StripeAdapter,
    PaymentGatewayType.PAYSTACK.value: PaystackAdapter,
}


class UnsupportedGatewayError(ValueError):
    """Raised when a gateway name is not registered with the factory."""

    def __init__(self, gateway_name: Any):
        super().__init__(f"Unsupported payment gateway: {gateway_name}")
        self.gateway_name = gateway_name


class GatewayFactory:
    """
    Registry of configured payment gateway adapters.

    An adapter is registered if and only if its secret key is configured.
    A missing key is not an error, the gateway is simply unavailable.
    The registry is read-only after construction.

    Usage:
        factory = GatewayFactory(get_settings())
        result = await factory.get_gateway("stripe").process_payment(request)
    """

    def __init__(
        self,
        settings: Settings,
        adapter_options: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        """
        Args:
            settings: Application settings carrying gateway credentials
            adapter_options: Extra constructor arguments per gateway name
        """
        self.settings = settings
        self._adapter_options = adapter_options or {}
        self._adapters: Dict[str, GatewayAdapter] = {}
        self._initialize_adapters()

    def _initialize_adapters(self) -> None:
        settings = self.settings

        if settings.stripe_secret_key:
            self._register(
                PaymentGatewayType.STRIPE.value,
                secret_key=settings.stripe_secret_key,
                publishable_key=settings.stripe_publishable_key,
                webhook_secret=settings.stripe_webhook_secret,
            )

        if settings.paystack_secret_key:
            self._register(
                PaymentGatewayType.PAYSTACK.value,
                secret_key=settings.paystack_secret_key,
                public_key=settings.paystack_public_key,
                base_url=settings.paystack_base_url,
                callback_base_url=settings.base_url,
                timeout_seconds=settings.paystack_timeout_seconds,
            )

        logger.info("gateway_factory.initialized", available_gateways=self.get_available_gateways())

    def _register(self, name: str, **config) -> None:
        adapter_class = GATEWAY_REGISTRY[name]
        self._adapters[name] = adapter_class(**config, **self._adapter_options.get(name, {}))

    def get_gateway(self, gateway_name: str) -> GatewayAdapter:
        """
        Get a payment gateway adapter by name (case-insensitive).

        Raises:
            UnsupportedGatewayError: If the gateway is not registered
        """
        if not self.is_gateway_available(gateway_name):
            raise UnsupportedGatewayError(gateway_name)
        return self._adapters[gateway_name.lower()]

    def get_available_gateways(self) -> List[str]:
        return list(self._adapters.keys())

    def is_gateway_available(self, gateway_name: Any) -> bool:
        if not isinstance(gateway_name, str) or not gateway_name:
            return False
        return gateway_name.lower() in self._adapters

    def get_gateway_capabilities(self, gateway_name: str) -> GatewayCapabilities:
        return self.get_gateway(gateway_name).get_capabilities()

    def get_all_gateway_capabilities(self) -> Dict[str, GatewayCapabilities]:
        return {name: adapter.get_capabilities() for name, adapter in self._adapters.items()}

    def validate_configuration(self) -> Dict[str, Any]:
        """
        Summarize gateway configuration health.

        Only warnings are reported; ``errors`` stays empty so this never
        blocks start-up.
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not self.settings.stripe_secret_key:
            warnings.append("Stripe is not configured (STRIPE_SECRET_KEY missing)")
        elif not self.settings.stripe_webhook_secret:
            warnings.append(
                "Stripe webhooks cannot be verified (STRIPE_WEBHOOK_SECRET missing)"
            )

        if not self.settings.paystack_secret_key:
            warnings.append("Paystack is not configured (PAYSTACK_SECRET_KEY missing)")

        if not warnings:
            warnings.append("All supported gateways are configured")

        return {
            "isValid": not errors,
            "errors": errors,
            "warnings": warnings,
            "availableGateways": self.get_available_gateways(),
        }

    def get_gateway_stats(self) -> Dict[str, Any]:
        return {
            "totalGateways": len(self._adapters),
            "availableGateways": self.get_available_gateways(),
            "configurationStatus": self.validate_configuration(),
        }
