# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token management and password hashing.

This module provides bearer token generation and validation using HS256
signing, and bcrypt password hashing. Tokens carry the subject identifier
and role; everything else is looked up from the store per request.
"""

import os
import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from opentelemetry import trace
import logging

from models.entities import Actor
from domain.errors import AuthenticationError, TokenExpiredError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthService:
    """
    JWT authentication service with HS256 signing and bcrypt password hashing.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        expires_seconds: Optional[int] = None,
        bcrypt_rounds: Optional[int] = None
    ):
        """
        Initialize the authentication service.

        Args:
            secret_key: HMAC key for token signing
            expires_seconds: Token lifetime
            bcrypt_rounds: bcrypt cost factor
        """
        self.secret_key = secret_key or os.getenv("JWT_SECRET", "dev-secret-key")
        self.algorithm = "HS256"
        self.expires_seconds = expires_seconds or int(os.getenv("JWT_EXPIRES_SECONDS", "604800"))
        self.bcrypt_rounds = bcrypt_rounds or int(os.getenv("BCRYPT_ROUNDS", "12"))

        if self.secret_key == "dev-secret-key":
            logger.warning("JWT_SECRET not set, using the development signing key")

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt with salt.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password string
        """
        with tracer.start_as_current_span("auth.hash_password") as span:
            span.set_attribute("auth.operation", "hash_password")

            salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
            hashed = bcrypt.hashpw(password.encode('utf-8'), salt)

            logger.debug("Password hashed successfully")
            return hashed.decode('utf-8')

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            password: Plain text password to verify
            hashed_password: Stored hashed password

        Returns:
            True if password matches, False otherwise
        """
        with tracer.start_as_current_span("auth.verify_password") as span:
            span.set_attribute("auth.operation", "verify_password")

            try:
                result = bcrypt.checkpw(
                    password.encode('utf-8'),
                    hashed_password.encode('utf-8')
                )

                span.set_attribute("auth.verification_result", "success" if result else "failed")
                return result
            except ValueError as e:
                span.set_attribute("auth.verification_result", "error")
                logger.error(f"Password verification error: {str(e)}")
                return False

    def generate_token(self, actor: Actor) -> Dict[str, Any]:
        """
        Generate a bearer token for an actor.

        Args:
            actor: Authenticated actor

        Returns:
            Dictionary containing the token and its metadata
        """
        with tracer.start_as_current_span("auth.generate_token") as span:
            span.set_attributes({
                "auth.operation": "generate_token",
                "user.id": actor.id,
                "user.role": actor.role
            })

            now = datetime.now(timezone.utc)
            expires_at = now + timedelta(seconds=self.expires_seconds)

            payload = {
                "sub": str(actor.id),
                "role": actor.role,
                "email": actor.email,
                "iat": now,
                "exp": expires_at
            }

            token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

            logger.info(
                "JWT token generated",
                extra={
                    "user_id": actor.id,
                    "role": actor.role,
                    "expires_at": expires_at.isoformat()
                }
            )

            return {
                "access_token": token,
                "token_type": "Bearer",
                "expires_in": self.expires_seconds,
                "expires_at": expires_at.isoformat()
            }

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate

        Returns:
            Decoded token payload with ``sub`` as an integer

        Raises:
            TokenExpiredError: If the token has expired
            AuthenticationError: If the token is otherwise invalid
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attribute("auth.operation", "validate_token")

            try:
                payload = jwt.decode(
                    token,
                    self.secret_key,
                    algorithms=[self.algorithm],
                    options={"require": ["sub", "role", "exp"]}
                )
                payload["sub"] = int(payload["sub"])

            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenExpiredError("Token has expired")

            except (jwt.InvalidTokenError, ValueError) as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise AuthenticationError("Invalid token")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload["sub"]
            })
            return payload
