"""Tests for the forward-auth HTTP boundary."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from traefik_tower.api import create_app
from traefik_tower.config import AuthType

TOKEN = "token-xyz"
BEARER = {"Authorization": f"Bearer {TOKEN}"}
UPSTREAM_TRACE_ID = "0af7651916cd43dd8448eb211c80319c"


@pytest.fixture
def make_client(test_settings, tracing, http_client):
    """Build a TestClient for the given auth type."""

    def factory(auth_type=AuthType.HYDRA, cognito_client=None, **overrides):
        settings = test_settings.model_copy(update={"auth_type": auth_type, **overrides})
        app = create_app(
            settings,
            tracing=tracing,
            http_client=http_client,
            cognito_client=cognito_client,
        )
        return TestClient(app)

    return factory


class TestForwardAuth:
    """Tests for the verification endpoint."""

    def test_verified(self, make_client, backend):
        """Test 200 with the consumer header."""
        backend.routes[("POST", "/oauth2/introspect")] = (200, {"active": True, "client_id": "abc"})

        response = make_client().get("/", headers=BEARER)

        assert response.status_code == 200
        assert response.headers["X-Consumer-Id"] == "abc"
        assert response.json() == "OK"

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
    def test_any_method(self, make_client, backend, method):
        """Test that the proxied method does not matter to routing."""
        backend.routes[("POST", "/oauth2/introspect")] = (200, {"active": True, "client_id": "abc"})

        response = make_client().request(method, "/", headers=BEARER)

        assert response.status_code == 200

    def test_missing_credential(self, make_client, backend):
        """Test 401 without calling the backend."""
        response = make_client().get("/")

        assert response.status_code == 401
        assert response.json() == "Unauthorized"
        assert "X-Consumer-Id" not in response.headers
        assert backend.requests == []

    def test_inactive_token(self, make_client, backend):
        """Test 401 for an inactive token."""
        backend.routes[("POST", "/oauth2/introspect")] = (200, {"active": False})

        response = make_client().get("/", headers=BEARER)

        assert response.status_code == 401
        assert "X-Consumer-Id" not in response.headers

    def test_backend_failure(self, make_client, backend):
        """Test 500 without disclosing the cause."""
        backend.routes[("POST", "/oauth2/introspect")] = (503, b"upstream connect error")

        response = make_client().get("/", headers=BEARER)

        assert response.status_code == 500
        assert response.json() == "Internal Server Error"
        assert "upstream" not in response.text

    def test_unexpected_error(self, make_client, caplog):
        """Test that an unexpected strategy failure is logged and mapped to 500."""
        client = make_client()
        client.app.state.strategy = MagicMock(verify=AsyncMock(side_effect=RuntimeError("boom")))

        response = client.get("/", headers=BEARER)

        assert response.status_code == 500
        assert "Unexpected error during verification" in caplog.text

    def test_policy_flow(self, make_client, backend):
        """Test hydra-keto through the endpoint."""
        backend.routes[("POST", "/oauth2/introspect")] = (200, {"active": True, "client_id": "c1"})
        backend.routes[("GET", "/clients/c1")] = (200, {"client_id": "c1", "metadata": {"role": "reader"}})
        backend.routes[("POST", "/engines/acp/ory/glob/allowed")] = (200, {"allowed": True})

        response = make_client(AuthType.HYDRA_KETO).get(
            "/", headers={**BEARER, "X-Forwarded-Uri": "/reports/2024/"}
        )

        assert response.status_code == 200
        assert response.headers["X-Consumer-Id"] == "c1"
        assert b'"resource":"reports:2024"' in backend.requests[2].content.replace(b" ", b"")

    def test_summary_log(self, make_client, backend, caplog):
        """Test the per-request summary with the propagated trace id."""
        backend.routes[("POST", "/oauth2/introspect")] = (200, {"active": True, "client_id": "abc"})
        traceparent = f"00-{UPSTREAM_TRACE_ID}-b7ad6b7169203331-01"

        with caplog.at_level(logging.INFO, logger="traefik_tower.api.router"):
            make_client().get("/", headers={**BEARER, "traceparent": traceparent})

        summary = next(r.getMessage() for r in caplog.records if "request-id" in r.getMessage())
        assert UPSTREAM_TRACE_ID in summary
        assert '"status": 200' in summary


class TestConsumerIdRoundTrip:
    """The header value equals the remote identity field byte-for-byte."""

    IDENTITY = "Svc.Account_42-prod@tenant"

    def test_hydra(self, make_client, backend):
        """Test client_id from introspection."""
        backend.routes[("POST", "/oauth2/introspect")] = (200, {"active": True, "client_id": self.IDENTITY})

        response = make_client(AuthType.HYDRA).get("/", headers=BEARER)

        assert response.headers["X-Consumer-Id"] == self.IDENTITY

    def test_hydra_keto(self, make_client, backend):
        """Test client_id from introspection after the policy check."""
        backend.routes[("POST", "/oauth2/introspect")] = (200, {"active": True, "client_id": self.IDENTITY})
        backend.routes[("GET", "/clients/Svc.Account_42-prod@tenant")] = (200, {"client_id": self.IDENTITY})
        backend.routes[("POST", "/engines/acp/ory/glob/allowed")] = (200, {"allowed": True})

        response = make_client(AuthType.HYDRA_KETO).get("/", headers=BEARER)

        assert response.headers["X-Consumer-Id"] == self.IDENTITY

    def test_cognito(self, make_client, backend):
        """Test sub from user info."""
        backend.routes[("GET", "/oauth2/userInfo")] = (200, {"sub": self.IDENTITY})

        response = make_client(AuthType.COGNITO).get("/", headers=BEARER)

        assert response.headers["X-Consumer-Id"] == self.IDENTITY

    def test_cognito_aws(self, make_client):
        """Test Username from GetUser."""
        cognito = MagicMock()
        cognito.meta.endpoint_url = "https://cognito-idp.eu-west-1.amazonaws.com"
        cognito.get_user.return_value = {"Username": self.IDENTITY}

        response = make_client(AuthType.COGNITO_AWS, cognito_client=cognito).get("/", headers=BEARER)

        assert response.headers["X-Consumer-Id"] == self.IDENTITY

    def test_cognito_aws_not_configured(self, make_client):
        """Test 500 when the provider client is missing."""
        response = make_client(AuthType.COGNITO_AWS).get("/", headers=BEARER)

        assert response.status_code == 500


class TestServiceRoutes:
    """Tests for health, metrics and debug routes."""

    def test_health(self, make_client):
        """Test health check."""
        response = make_client().get("/health")

        assert response.status_code == 200
        assert response.json() == ""

    def test_debug_routes(self, make_client):
        """Test /200 and /404 in debug mode."""
        client = make_client(debug=True)

        assert client.get("/200").text == "I am auth"
        assert client.get("/404").status_code == 404

    def test_debug_routes_disabled(self, make_client):
        """Test that debug routes are absent outside debug mode."""
        client = make_client(debug=False)

        assert client.get("/200").status_code == 404
        assert client.get("/docs").status_code == 404

    def test_metrics(self, make_client):
        """Test the Prometheus scrape endpoint."""
        response = make_client(debug=False).get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "traefik_tower_verifications_total" in response.text
        assert "traefik_tower_verification_latency_seconds" in response.text

    def test_verification_recorded(self, make_client, backend):
        """Test that each verification is counted by strategy and status."""
        backend.routes[("GET", "/oauth2/userInfo")] = (200, {"sub": ""})
        labels = {"auth_type": "cognito", "status": "401"}
        before = REGISTRY.get_sample_value("traefik_tower_verifications_total", labels) or 0.0
        observed_before = (
            REGISTRY.get_sample_value("traefik_tower_verification_latency_seconds_count", {"auth_type": "cognito"})
            or 0.0
        )

        make_client(AuthType.COGNITO).get("/", headers=BEARER)

        assert REGISTRY.get_sample_value("traefik_tower_verifications_total", labels) == before + 1
        assert (
            REGISTRY.get_sample_value("traefik_tower_verification_latency_seconds_count", {"auth_type": "cognito"})
            == observed_before + 1
        )


class TestCreateApp:
    """Tests for application construction."""

    def test_invalid_backend_url(self, test_settings):
        """Test that startup fails on an unusable AUTH_SERVER_URL."""
        settings = test_settings.model_copy(update={"auth_server_url": ""})

        with pytest.raises(ValueError, match="AUTH_SERVER_URL must contain valid url"):
            create_app(settings)

    def test_owned_resources_closed(self, test_settings):
        """Test that clients created by the app are closed on shutdown."""
        app = create_app(test_settings)
        (http_client,) = app.state.owned_http_clients

        with TestClient(app) as client:
            assert client.get("/health").status_code == 200

        assert http_client._http.is_closed

    def test_settings_from_environment(self, monkeypatch):
        """Test AUTH_TYPE selection from the environment."""
        from traefik_tower.config import Settings

        monkeypatch.setenv("AUTH_TYPE", "hydra-keto")
        monkeypatch.setenv("KETO_URL", "https://keto.test")

        settings = Settings()

        assert settings.auth_type is AuthType.HYDRA_KETO
        assert settings.keto_url == "https://keto.test"
