"""
Shared test configuration and fixtures for the Unified Payments API test suite.
"""

import hashlib
import hmac
import json
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from unified_payments.core.config import Settings
from unified_payments.integrations.payment_gateways import (
    GatewayFactory,
    PaystackAdapter,
    StripeAdapter,
)
from unified_payments.main import create_application

STRIPE_SECRET_KEY = "sk_test_unified_123"
STRIPE_WEBHOOK_SECRET = "whsec_test_unified_123"
PAYSTACK_SECRET_KEY = "sk_test_paystack_123"
TEST_API_KEY = "test-api-key"


def make_settings(**overrides: Any) -> Settings:
    """
    Build settings without reading gateway credentials from the environment.

    Every credential is passed explicitly so a developer's shell or .env
    file cannot change which gateways a test sees.
    """
    values: Dict[str, Any] = {
        "environment": "test",
        "base_url": "http://testserver",
        "api_keys": [],
        "stripe_secret_key": None,
        "stripe_publishable_key": None,
        "stripe_webhook_secret": None,
        "paystack_secret_key": None,
        "paystack_public_key": None,
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


def stripe_signature(payload: bytes, secret: str = STRIPE_WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a ``stripe-signature`` header the way Stripe signs webhooks."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def paystack_signature(payload: bytes, secret: str = PAYSTACK_SECRET_KEY) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()


class RecordingTransport(httpx.MockTransport):
    """
    httpx mock transport that records every request and replies from a
    queue of (status_code, json_body) pairs.
    """

    def __init__(self, responses: Optional[List[Any]] = None):
        self.requests: List[httpx.Request] = []
        self.responses = list(responses or [])
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            return httpx.Response(500, json={"status": False, "message": "No mocked response"})

        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        status_code, body = response
        return httpx.Response(status_code, json=body)

    def json_bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests if request.content]


@pytest.fixture
def stripe_adapter() -> StripeAdapter:
    return StripeAdapter(
        secret_key=STRIPE_SECRET_KEY,
        publishable_key="pk_test_unified_123",
        webhook_secret=STRIPE_WEBHOOK_SECRET,
    )


@pytest.fixture
def paystack_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def paystack_adapter(paystack_transport: RecordingTransport) -> PaystackAdapter:
    return PaystackAdapter(
        secret_key=PAYSTACK_SECRET_KEY,
        public_key="pk_test_paystack_123",
        callback_base_url="http://testserver",
        transport=paystack_transport,
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings(
        stripe_secret_key=STRIPE_SECRET_KEY,
        stripe_webhook_secret=STRIPE_WEBHOOK_SECRET,
        paystack_secret_key=PAYSTACK_SECRET_KEY,
    )


@pytest.fixture
def gateway_factory(settings: Settings, paystack_transport: RecordingTransport) -> GatewayFactory:
    return GatewayFactory(settings, adapter_options={"paystack": {"transport": paystack_transport}})


@pytest.fixture
def client_factory() -> Callable[..., TestClient]:
    """Build a TestClient for an application with the given settings."""

    def _build(settings: Settings, gateway_factory: Optional[GatewayFactory] = None) -> TestClient:
        application = create_application(settings=settings, gateway_factory=gateway_factory)
        return TestClient(application)

    return _build


@pytest.fixture
def client(settings: Settings, gateway_factory: GatewayFactory, client_factory) -> TestClient:
    with client_factory(settings, gateway_factory) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"x-api-key": TEST_API_KEY}


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture
def sign_stripe() -> Callable[..., str]:
    return stripe_signature


@pytest.fixture
def sign_paystack() -> Callable[..., str]:
    return paystack_signature
