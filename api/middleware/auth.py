# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

This module provides a Flask decorator that validates the bearer token and
builds the user context handed to the workflow services. Failures are raised
as domain errors and rendered by the application error handler.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from models.entities import UserContext
from domain.errors import AuthenticationError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation and user context building for
    protected endpoints.
    """

    def __init__(self, auth_service):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
        """
        self.auth_service = auth_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '').strip()

        if not auth_header:
            return None

        if auth_header.lower().startswith('bearer '):
            return auth_header[7:].strip() or None

        return auth_header

    def build_user_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]) -> UserContext:
        """
        Build user context from validated token payload and request information.

        Args:
            token_payload: Decoded JWT payload
            request_info: Request metadata (IP, user agent)

        Returns:
            UserContext object for request processing
        """
        return UserContext(
            actor_id=token_payload["sub"],
            role=token_payload["role"],
            email=token_payload.get("email"),
            token_payload=token_payload,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent")
        )

    def get_request_info(self) -> Dict[str, Any]:
        """
        Extract request metadata for user context.

        Returns:
            Dictionary with request information
        """
        return {
            "ip_address": request.headers.get('X-Forwarded-For', request.remote_addr or '').split(',')[0].strip(),
            "user_agent": request.headers.get('User-Agent', '')
        }

    def authenticate_request(self) -> UserContext:
        """
        Validate the bearer token of the current request.

        Raises:
            AuthenticationError: missing or invalid token
            TokenExpiredError: expired token
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                raise AuthenticationError("Missing authorization token")

            try:
                token_payload = self.auth_service.validate_token(token)
            except AuthenticationError:
                span.set_attribute("auth.result", "invalid_token")
                raise

            try:
                user_context = self.build_user_context(token_payload, self.get_request_info())
            except ValueError as e:
                span.set_attribute("auth.result", "invalid_claims")
                logger.warning(f"Authentication failed: unusable token claims: {e}")
                raise AuthenticationError("Invalid token")

            span.set_attributes({
                "auth.result": "success",
                "user.id": user_context.actor_id,
                "user.role": user_context.role
            })

            logger.debug(
                "Authentication successful",
                extra={
                    "user_id": user_context.actor_id,
                    "role": user_context.role,
                    "ip_address": user_context.ip_address
                }
            )
            return user_context


def require_auth(f: Callable) -> Callable:
    """
    Decorator to require JWT authentication for Flask routes.

    The wrapped view receives the user context as its first argument; it is
    also stored on ``g.user_context``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_context = current_app.auth_middleware.authenticate_request()
        g.user_context = user_context
        return f(user_context, *args, **kwargs)

    return decorated_function
