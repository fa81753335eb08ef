# SPDX-License-Identifier: Apache-2.0

"""
Typed error taxonomy for workflow operations.

Each error carries the HTTP status and RFC 7807 problem type the transport
layer renders it with, so routes never translate error kinds by hand.
"""

from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base class for every error a workflow operation can return."""

    status_code = 500
    error_type = "internal-error"
    title = "Internal Server Error"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.error_type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.message
        }
        if self.details:
            data["errors"] = self.details
        return data


class ValidationError(DomainError):
    """Missing or malformed required input."""

    status_code = 400
    error_type = "validation-error"
    title = "Validation Error"


class AuthenticationError(DomainError):
    """Missing, invalid credential or wrong password."""

    status_code = 401
    error_type = "authentication-required"
    title = "Authentication Required"


class TokenExpiredError(AuthenticationError):
    """Bearer credential was valid but has expired."""

    error_type = "token-expired"
    title = "Token Expired"


class AuthorizationError(DomainError):
    """Authenticated actor lacks the role or ownership required."""

    status_code = 403
    error_type = "insufficient-permissions"
    title = "Insufficient Permissions"


class RegistrationUnderReviewError(AuthorizationError):
    """Organization has not been approved, login refused."""

    error_type = "registration-under-review"
    title = "Registration Under Review"


class AccountBannedError(AuthorizationError):
    """Banned individual attempted a mutation."""

    error_type = "account-banned"
    title = "Account Banned"


class NotFoundError(DomainError):
    """Referenced entity is absent or not visible to the actor."""

    status_code = 404
    error_type = "not-found"
    title = "Not Found"


class ConflictError(DomainError):
    """A precondition on the current state does not hold."""

    status_code = 409
    error_type = "conflict"
    title = "Conflict"


class InternalError(DomainError):
    """Store or infrastructure failure; the message is always generic."""

    status_code = 500
    error_type = "internal-error"
    title = "Internal Server Error"
