# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for authentication and error handling middleware.
"""

import jwt
import pytest
from datetime import datetime, timedelta, timezone
from flask import Flask, g

from middleware.auth import AuthMiddleware, require_auth
from middleware.error_handler import ErrorHandlerMiddleware, GENERIC_SERVER_ERROR
from observability.middleware import add_observability_middleware
from services.auth import AuthService
from services.hal import HalFormatter
from models.entities import Actor, UserContext
from models.enums import ActorRole, AccountStatus
from domain.errors import AuthenticationError, ConflictError, TokenExpiredError

SECRET = "middleware-secret"


def _actor(actor_id=5, role=ActorRole.ORGANIZATION):
    return Actor(
        id=actor_id, email="ong@example.com", password_hash="h",
        role=role, status=AccountStatus.APPROVED
    )


class TestAuthService:
    """Test token issuing and password hashing."""

    def setup_method(self):
        self.auth_service = AuthService(SECRET, 3600, 4)

    def test_token_round_trip(self):
        token = self.auth_service.generate_token(_actor())

        assert token["token_type"] == "Bearer"
        assert token["expires_in"] == 3600

        payload = self.auth_service.validate_token(token["access_token"])
        assert payload["sub"] == 5
        assert payload["role"] == "organization"

    def test_expired_token(self):
        expired = AuthService(SECRET, -30, 4).generate_token(_actor())["access_token"]
        with pytest.raises(TokenExpiredError):
            self.auth_service.validate_token(expired)

    def test_foreign_signature(self):
        forged = AuthService("another-secret", 3600, 4).generate_token(_actor())["access_token"]
        with pytest.raises(AuthenticationError) as exc_info:
            self.auth_service.validate_token(forged)
        assert not isinstance(exc_info.value, TokenExpiredError)

    def test_missing_role_claim(self):
        token = jwt.encode(
            {"sub": "5", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            SECRET,
            algorithm="HS256"
        )
        with pytest.raises(AuthenticationError):
            self.auth_service.validate_token(token)

    def test_password_hashing(self):
        hashed = self.auth_service.hash_password("secret123")
        assert hashed != "secret123"
        assert self.auth_service.verify_password("secret123", hashed)
        assert not self.auth_service.verify_password("wrong", hashed)
        assert not self.auth_service.verify_password("secret123", "not-a-bcrypt-hash")


class TestAuthMiddleware:
    """Test bearer token extraction and the require_auth decorator."""

    def setup_method(self):
        self.auth_service = AuthService(SECRET, 3600, 4)
        self.app = Flask(__name__)
        self.app.auth_middleware = AuthMiddleware(self.auth_service)
        ErrorHandlerMiddleware(self.app, HalFormatter("https://api.example.com"))

        @self.app.route('/protected')
        @require_auth
        def protected(user_context):
            return {"actorId": user_context.actor_id, "role": user_context.role, "stored": g.user_context.actor_id}

        self.client = self.app.test_client()

    def _bearer(self, actor):
        return {"Authorization": f"Bearer {self.auth_service.generate_token(actor)['access_token']}"}

    def test_extract_token(self):
        middleware = self.app.auth_middleware
        with self.app.test_request_context('/', headers={"Authorization": "Bearer abc.def.ghi"}):
            assert middleware.extract_token_from_request() == "abc.def.ghi"
        with self.app.test_request_context('/', headers={"Authorization": "abc.def.ghi"}):
            assert middleware.extract_token_from_request() == "abc.def.ghi"
        with self.app.test_request_context('/'):
            assert middleware.extract_token_from_request() is None

    def test_request_info_prefers_forwarded_address(self):
        headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.1", "User-Agent": "pytest"}
        with self.app.test_request_context('/', headers=headers):
            info = self.app.auth_middleware.get_request_info()
        assert info == {"ip_address": "203.0.113.9", "user_agent": "pytest"}

    def test_valid_token(self):
        response = self.client.get('/protected', headers=self._bearer(_actor()))
        assert response.status_code == 200
        assert response.get_json() == {"actorId": 5, "role": "organization", "stored": 5}

    def test_missing_token(self):
        response = self.client.get('/protected')
        body = response.get_json()

        assert response.status_code == 401
        assert body["type"].endswith("/authentication-required")
        assert body["detail"] == "Missing authorization token"
        assert "login" in body["_links"]

    def test_expired_token(self):
        expired = AuthService(SECRET, -30, 4).generate_token(_actor())["access_token"]
        response = self.client.get('/protected', headers={"Authorization": f"Bearer {expired}"})

        assert response.status_code == 401
        assert response.get_json()["type"].endswith("/token-expired")


class TestErrorHandlerMiddleware:
    """Test problem document rendering."""

    def setup_method(self):
        self.app = Flask(__name__)
        ErrorHandlerMiddleware(self.app, HalFormatter("https://api.example.com"))

        @self.app.route('/conflict')
        def conflict():
            raise ConflictError("Report already claimed or resolved")

        @self.app.route('/boom')
        def boom():
            raise RuntimeError("connection string mongodb://user:pass@db leaked")

        self.client = self.app.test_client()

    def test_domain_error(self):
        response = self.client.get('/conflict')
        body = response.get_json()

        assert response.status_code == 409
        assert body["title"] == "Conflict"
        assert body["detail"] == "Report already claimed or resolved"
        assert body["instance"] == "/conflict"

    def test_unexpected_error_is_generic(self):
        response = self.client.get('/boom')
        body = response.get_json()

        assert response.status_code == 500
        assert body["detail"] == GENERIC_SERVER_ERROR
        assert "mongodb" not in response.get_data(as_text=True)

    def test_unknown_route(self):
        response = self.client.get('/nowhere')
        assert response.status_code == 404
        assert response.get_json()["type"].endswith("/not-found")

    def test_method_not_allowed(self):
        response = self.client.post('/conflict')
        assert response.status_code == 405
        assert response.get_json()["title"] == "Method Not Allowed"


class TestObservabilityMiddleware:
    """Test the per-request log record."""

    def setup_method(self):
        self.app = Flask(__name__)
        add_observability_middleware(self.app, instrument=False)

        @self.app.route('/api/reports/<int:report_id>/claim', methods=['PUT'])
        def claim(report_id):
            g.user_context = UserContext(actor_id=5, role=ActorRole.ORGANIZATION)
            return {"id": report_id}

        @self.app.route('/api/healthz')
        def healthz():
            return {"status": "unhealthy"}, 503

        self.client = self.app.test_client()

    def _completed(self, caplog):
        return next(r for r in caplog.records if r.getMessage() == "HTTP request completed")

    def test_logs_workflow_route(self, caplog):
        with caplog.at_level("INFO", logger="observability.middleware"):
            response = self.client.put('/api/reports/7/claim')

        fields = self._completed(caplog).extra_fields
        assert response.status_code == 200
        assert fields["endpoint"] == "claim"
        assert fields["resource"] == {"report.id": 7}
        assert fields["user_id"] == 5
        assert fields["role"] == "organization"

    def test_server_errors_log_as_warning(self, caplog):
        with caplog.at_level("INFO", logger="observability.middleware"):
            self.client.get('/api/healthz')

        record = self._completed(caplog)
        assert record.levelname == "WARNING"
        assert record.extra_fields["resource"] == {}
        assert record.extra_fields["role"] is None
