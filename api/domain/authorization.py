# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for role-gated workflow intents.

This module contains pure functions for role checks, report visibility,
and the authentication gates applied to organizations and banned accounts.
"""

from typing import Optional
from dataclasses import dataclass
from models.entities import Actor, Report, UserContext
from models.enums import ActorRole, AccountStatus
from .errors import (
    AuthenticationError,
    AuthorizationError,
    AccountBannedError,
    NotFoundError,
    RegistrationUnderReviewError
)


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None


def check_role(user_context: UserContext, *roles: ActorRole) -> AuthorizationResult:
    """
    Check if the actor holds one of the given roles.

    Args:
        user_context: Authenticated actor
        roles: Acceptable roles

    Returns:
        AuthorizationResult indicating if the role is accepted
    """
    if user_context.has_role(*roles):
        return AuthorizationResult(allowed=True)

    expected = ", ".join(role.value for role in roles)
    return AuthorizationResult(
        allowed=False,
        reason=f"This action requires one of the roles: {expected}"
    )


def require_role(user_context: UserContext, *roles: ActorRole) -> None:
    """Raise AuthorizationError unless the actor holds one of ``roles``."""
    result = check_role(user_context, *roles)
    if not result.allowed:
        raise AuthorizationError(result.reason)


def check_report_visibility(user_context: UserContext, report: Report) -> AuthorizationResult:
    """
    Check if the actor may read a report.

    The creator always can. An organization can while the report is assigned
    to it or still available for claiming.
    """
    if report.creator_id == user_context.actor_id:
        return AuthorizationResult(allowed=True)

    if user_context.role == ActorRole.ORGANIZATION:
        if report.assigned_organization_id == user_context.actor_id or report.is_available():
            return AuthorizationResult(allowed=True)

    return AuthorizationResult(allowed=False, reason="Report is not visible to this actor")


def require_report_visible(user_context: UserContext, report: Optional[Report], report_id: int) -> Report:
    """Return the report, or NotFoundError when it is absent or not visible."""
    if report is None or not check_report_visibility(user_context, report).allowed:
        raise NotFoundError(f"Report {report_id} not found")
    return report


def check_can_report_user(user_context: UserContext, report: Report) -> AuthorizationResult:
    """
    Check if an organization may report the creator of a report.

    Any organization that can see the report qualifies, including one only
    viewing an available report.
    """
    if user_context.role != ActorRole.ORGANIZATION:
        return AuthorizationResult(allowed=False, reason="Only organizations can report users")

    if report.assigned_organization_id == user_context.actor_id or report.is_available():
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(allowed=False, reason="Report is not visible to this organization")


def check_login_allowed(actor: Actor) -> None:
    """
    Gate applied after the password has been verified.

    Raises:
        RegistrationUnderReviewError: organization not yet approved, or rejected
        AuthenticationError: account retained by a self-deletion
    """
    if actor.is_deactivated():
        raise AuthenticationError("Account deactivated")

    if actor.role == ActorRole.ORGANIZATION and actor.status in (
        AccountStatus.PENDING_APPROVAL,
        AccountStatus.REJECTED
    ):
        raise RegistrationUnderReviewError(
            "Your registration is still under review by an administrator"
        )


def require_not_banned(actor: Optional[Actor]) -> Actor:
    """
    Refuse mutations by banned or deactivated accounts.

    Banned individuals keep read access, so only mutating operations call this.
    """
    if actor is None:
        raise AuthenticationError("Account no longer exists")
    if actor.is_banned():
        raise AccountBannedError("This account is banned and cannot perform this action")
    return actor
