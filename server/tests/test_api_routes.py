"""
HTTP API tests for payments, health, authentication and rate limiting.
"""

from unittest.mock import AsyncMock, Mock

import pytest
import stripe

from unified_payments.integrations.payment_gateways import GatewayFactory


def paystack_initialize_response() -> dict:
    return {
        "status": True,
        "message": "Authorization URL created",
        "data": {
            "id": 1,
            "authorization_url": "https://checkout.paystack.com/abc",
            "access_code": "abc",
            "reference": "unified_paystack_ref",
        },
    }


@pytest.fixture
def paystack_payment() -> dict:
    return {
        "gateway": "paystack",
        "amount": 50,
        "currency": "NGN",
        "customerEmail": "customer@example.com",
        "metadata": {"orderId": "order_123"},
    }


class TestServiceIndex:

    def test_api_index(self, client):
        response = client.get("/api")

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Unified Payments API"
        assert body["endpoints"]["payments"] == "/api/payments"
        assert body["supportedGateways"] == ["stripe", "paystack"]

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/api/unknown")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Not Found"}

    def test_security_headers(self, client):
        response = client.get("/api/health/live")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "X-Process-Time" in response.headers
        assert response.headers["X-RateLimit-Limit"] == "100"


class TestAuthentication:

    def test_missing_api_key(self, client, paystack_payment):
        response = client.post("/api/payments/process", json=paystack_payment)

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "API key is required"}

    def test_any_key_accepted_outside_production(self, client, paystack_transport, paystack_payment):
        paystack_transport.responses.append((200, paystack_initialize_response()))

        response = client.post(
            "/api/payments/process",
            json=paystack_payment,
            headers={"Authorization": "Bearer anything"},
        )

        assert response.status_code == 200

    def test_production_rejects_unknown_key(self, settings_factory, client_factory, paystack_payment):
        settings = settings_factory(environment="production", api_keys=["prod-key"], paystack_secret_key="sk_test")

        with client_factory(settings) as client:
            response = client.post(
                "/api/payments/process",
                json=paystack_payment,
                headers={"x-api-key": "wrong-key"},
            )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid API key"

    def test_production_accepts_configured_bearer_key(self, settings_factory, client_factory, paystack_payment):
        settings = settings_factory(environment="production", api_keys=["prod-key"], paystack_secret_key="sk_test")
        paystack_payment.pop("customerEmail")

        with client_factory(settings) as client:
            response = client.post(
                "/api/payments/process",
                json=paystack_payment,
                headers={"Authorization": "Bearer prod-key"},
            )

        # Authenticated; rejected by the adapter's own validation.
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestPaymentRoutes:

    def test_process_paystack_payment(self, client, auth_headers, paystack_transport, paystack_payment):
        paystack_transport.responses.append((200, paystack_initialize_response()))

        response = client.post("/api/payments/process", json=paystack_payment, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["gateway"] == "paystack"
        assert body["unifiedId"].startswith("unified_paystack_")
        assert body["gatewayResponse"]["authorizationUrl"] == "https://checkout.paystack.com/abc"
        assert body["gatewayResponse"]["amount"] == 50
        assert paystack_transport.json_bodies()[0]["amount"] == 5000

    def test_process_stripe_payment(self, client, auth_headers):
        stripe_client = Mock()
        stripe_client.v1.payment_intents.create_async = AsyncMock(
            return_value=stripe.PaymentIntent.construct_from(
                {"id": "pi_123", "amount": 2000, "currency": "usd", "status": "succeeded", "client_secret": "secret"},
                "sk_test",
            )
        )
        client.app.state.gateway_factory.get_gateway("stripe").client = stripe_client

        response = client.post(
            "/api/payments/process",
            json={"gateway": "stripe", "amount": 2000, "currency": "usd", "paymentMethodId": "pm_card_visa"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["gatewayResponse"]["paymentIntentId"] == "pi_123"
        params = stripe_client.v1.payment_intents.create_async.call_args[0][0]
        assert params["payment_method"] == "pm_card_visa"

    def test_adapter_error_returns_400_envelope(self, client, auth_headers, paystack_transport, paystack_payment):
        paystack_payment.pop("customerEmail")

        response = client.post("/api/payments/process", json=paystack_payment, headers=auth_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["gateway"] == "paystack"
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert paystack_transport.requests == []

    def test_unconfigured_gateway_returns_400(self, settings_factory, client_factory, auth_headers, paystack_payment):
        with client_factory(settings_factory(stripe_secret_key="sk_test_only")) as client:
            response = client.post("/api/payments/process", json=paystack_payment, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Gateway 'paystack' is not available or not configured",
        }

    @pytest.mark.parametrize(
        "override",
        [
            {"gateway": "paypal"},
            {"amount": 0},
            {"currency": "NAIRA"},
            {"customerEmail": "not-an-email"},
            {"metadata": "not-an-object"},
        ],
    )
    def test_body_validation(self, client, auth_headers, paystack_payment, override):
        paystack_payment.update(override)

        response = client.post("/api/payments/process", json=paystack_payment, headers=auth_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert body["details"]

    def test_create_intent(self, client, auth_headers, paystack_transport, paystack_payment):
        paystack_transport.responses.append((200, paystack_initialize_response()))

        response = client.post("/api/payments/intent", json=paystack_payment, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["gatewayResponse"]["status"] == "pending"

    def test_refund(self, client, auth_headers, paystack_transport):
        paystack_transport.responses.append(
            (200, {"status": True, "data": {"id": 7, "status": "pending", "amount": 1000, "currency": "NGN"}})
        )

        response = client.post(
            "/api/payments/refund",
            json={"gateway": "paystack", "transactionReference": "ref_123", "amount": 10},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["gatewayResponse"]["refundId"] == 7
        assert paystack_transport.json_bodies()[0]["amount"] == 1000

    def test_refund_missing_reference(self, client, auth_headers):
        response = client.post("/api/payments/refund", json={"gateway": "stripe"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "paymentIntentId is required for refunds"

    def test_payment_status(self, client, auth_headers, paystack_transport):
        paystack_transport.responses.append(
            (200, {"status": True, "data": {"status": "success", "amount": 5000, "currency": "NGN", "reference": "ref_123"}})
        )

        response = client.get("/api/payments/status/paystack/ref_123", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["gatewayResponse"]["status"] == "success"
        assert paystack_transport.requests[0].url.path == "/transaction/verify/ref_123"

    def test_payment_status_unknown_gateway(self, client, auth_headers):
        response = client.get("/api/payments/status/paypal/ref_123", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Gateway 'paypal' is not available or not configured"

    def test_list_gateways(self, client):
        response = client.get("/api/payments/gateways")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalGateways"] == 2
        assert data["availableGateways"] == ["stripe", "paystack"]
        assert data["capabilities"]["paystack"]["features"]["refunds"] is True

    def test_gateway_details(self, client):
        response = client.get("/api/payments/gateways/stripe")

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "stripe"

    def test_gateway_details_not_found(self, client):
        response = client.get("/api/payments/gateways/paypal")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Gateway 'paypal' not found"}

    def test_payments_health(self, client):
        response = client.get("/api/payments/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["configuration"]["isValid"] is True
        assert body["statistics"]["totalGateways"] == 2
        assert body["uptime"] >= 0


class TestHealthRoutes:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["gateways"]["totalAvailable"] == 2
        assert body["system"]["pid"] > 0

    def test_gateways_health(self, client):
        response = client.get("/api/health/gateways")

        body = response.json()
        assert body["totalGateways"] == 2
        assert body["gateways"]["stripe"]["status"] == "available"
        assert body["gateways"]["paystack"]["supportedCurrencies"] > 0
        assert body["summary"] == {"available": 2, "errors": 0}

    def test_ready(self, client):
        response = client.get("/api/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_without_gateways(self, settings_factory, client_factory):
        with client_factory(settings_factory()) as client:
            response = client.get("/api/health/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
        assert response.json()["totalGateways"] == 0

    def test_live(self, client):
        response = client.get("/api/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_performance(self, client):
        response = client.get("/api/health/performance")

        assert response.status_code == 200
        metrics = response.json()["metrics"]
        assert metrics["memory"]["total"]["bytes"] > 0
        assert metrics["platform"]["cpus"] >= 1


class TestRateLimiting:

    def test_payment_mutations_are_limited(self, settings_factory, client_factory, auth_headers, paystack_payment):
        settings = settings_factory(paystack_secret_key="sk_test", payment_rate_limit_requests=2)
        paystack_payment.pop("customerEmail")

        with client_factory(settings) as client:
            responses = [
                client.post("/api/payments/process", json=paystack_payment, headers=auth_headers)
                for _ in range(3)
            ]
            status_response = client.get("/api/payments/gateways", headers=auth_headers)

        assert [response.status_code for response in responses] == [400, 400, 429]
        limited = responses[2]
        assert limited.json()["error"] == "Rate limit exceeded"
        assert limited.json()["retryAfter"] > 0
        assert int(limited.headers["Retry-After"]) > 0
        # Reads only count against the general limit.
        assert status_response.status_code == 200

    def test_general_limit(self, settings_factory, client_factory):
        settings = settings_factory(rate_limit_requests=2)

        with client_factory(settings) as client:
            codes = [client.get("/api/health/live").status_code for _ in range(3)]

        assert codes == [200, 200, 429]

    def test_clients_are_limited_separately(self, settings_factory, client_factory):
        settings = settings_factory(rate_limit_requests=1)

        with client_factory(settings) as client:
            first = client.get("/api/health/live", headers={"x-forwarded-for": "203.0.113.1"})
            second = client.get("/api/health/live", headers={"x-forwarded-for": "203.0.113.2"})
            repeat = client.get("/api/health/live", headers={"x-forwarded-for": "203.0.113.1"})

        assert first.status_code == 200
        assert second.status_code == 200
        assert repeat.status_code == 429

    def test_rotating_api_keys_share_the_client_limit(self, settings_factory, client_factory):
        settings = settings_factory(rate_limit_requests=2)

        with client_factory(settings) as client:
            codes = [
                client.get("/api/payments/gateways", headers={"x-api-key": f"key-{attempt}"}).status_code
                for attempt in range(4)
            ]

        assert codes == [200, 200, 429, 429]

    def test_factory_injection(self, settings, client_factory):
        factory = GatewayFactory(settings)

        with client_factory(settings, factory) as client:
            assert client.app.state.gateway_factory is factory
