# SPDX-License-Identifier: Apache-2.0

"""
Account domain logic: registration, organization approval, individual
trust status, profile updates and the deletion policy.

Functions return the field changes a workflow must write, together with the
fields expected to still hold at write time, and leave persistence to the
service layer.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple
from pydantic import ValidationError as PydanticValidationError
from models.entities import Actor
from models.enums import ActorRole, AccountStatus
from models.requests import RegisterRequest, UpdateProfileRequest
from .errors import ValidationError, ConflictError
from .reports import require_text

INITIAL_STATUS = {
    ActorRole.INDIVIDUAL: AccountStatus.APPROVED,
    ActorRole.ORGANIZATION: AccountStatus.PENDING_APPROVAL,
    ActorRole.ADMINISTRATOR: AccountStatus.APPROVED,
}


def _details(exc: PydanticValidationError):
    return [
        {"field": ".".join(str(part) for part in error["loc"]) or "body", "message": error["msg"]}
        for error in exc.errors()
    ]


def parse_registration(payload: Dict[str, Any]) -> RegisterRequest:
    """Validate a registration payload, converting pydantic errors."""
    try:
        return RegisterRequest.model_validate(payload or {})
    except PydanticValidationError as e:
        raise ValidationError("Invalid registration data", details=_details(e))


def build_actor(request: RegisterRequest, password_hash: str) -> Actor:
    """
    Create an unsaved actor from a validated registration.

    Individuals start approved, organizations start pending approval.
    """
    role = ActorRole(request.account_type)
    name = request.full_name if role == ActorRole.INDIVIDUAL else request.organization_name
    return Actor(
        email=request.email,
        password_hash=password_hash,
        role=role,
        status=INITIAL_STATUS[role],
        full_name=name,
        cpf=request.cpf if role == ActorRole.INDIVIDUAL else None,
        cnpj=request.cnpj if role == ActorRole.ORGANIZATION else None,
        phone=request.phone,
        address=request.address
    )


def parse_profile_update(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn a profile payload into field changes.

    Only fields present in the payload change; blank strings clear them.
    """
    try:
        request = UpdateProfileRequest.model_validate(payload or {})
    except PydanticValidationError as e:
        raise ValidationError("Invalid profile data", details=_details(e))

    changes = {}
    for field in request.model_fields_set:
        value = getattr(request, field)
        changes[field] = value if value else None
    if not changes:
        raise ValidationError("No profile fields to update")
    return changes


def _require_organization(actor: Actor) -> None:
    if actor.role != ActorRole.ORGANIZATION:
        raise ValidationError(f"Account {actor.id} is not an organization")


def _require_individual(actor: Actor) -> None:
    if actor.role != ActorRole.INDIVIDUAL:
        raise ValidationError(f"Account {actor.id} is not an individual user")


def approval_transition(org: Actor) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Plan the approval of an organization.

    Returns:
        (expected, changes) for a conditional write
    """
    _require_organization(org)
    if org.status == AccountStatus.APPROVED:
        raise ConflictError("Organization already approved")
    expected = {"role": ActorRole.ORGANIZATION.value, "status": org.status}
    changes = {"status": AccountStatus.APPROVED.value, "rejection_reason": None}
    return expected, changes


def rejection_transition(org: Actor, reason: Optional[str]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Plan the rejection of an organization; the reason is mandatory."""
    reason = require_text(reason, "reason")
    _require_organization(org)
    expected = {"role": ActorRole.ORGANIZATION.value}
    changes = {"status": AccountStatus.REJECTED.value, "rejection_reason": reason}
    return expected, changes


def ban_transition(
    target: Actor,
    organization_id: int,
    reason: Optional[str],
    now: datetime
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Plan marking an individual as banned after an organization report."""
    reason = require_text(reason, "reason")
    _require_individual(target)
    expected = {"role": ActorRole.INDIVIDUAL.value}
    changes = {
        "status": AccountStatus.BANNED.value,
        "ban_reason": reason,
        "banned_by": organization_id,
        "banned_at": now
    }
    return expected, changes


def guard_ban_review(target: Actor) -> None:
    """Confirming or reverting a ban needs a banned individual."""
    _require_individual(target)
    if target.status != AccountStatus.BANNED:
        raise ConflictError(f"User {target.id} is not banned")


def revert_ban_transition(target: Actor) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Plan reinstating a banned individual, clearing the ban bookkeeping."""
    guard_ban_review(target)
    expected = {"role": ActorRole.INDIVIDUAL.value, "status": AccountStatus.BANNED.value}
    changes = {
        "status": AccountStatus.APPROVED.value,
        "ban_reason": None,
        "banned_by": None,
        "banned_at": None,
        "deactivated_at": None
    }
    return expected, changes


@dataclass
class DeletionDecision:
    """Outcome of the deletion policy for one self-deletion request."""
    retain: bool
    report_count: int

    @property
    def message(self) -> str:
        if self.retain:
            return (
                f"Account deactivated; {self.report_count} report(s) retained for audit"
            )
        return "Account permanently deleted"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deleted": not self.retain,
            "reportCount": self.report_count,
            "message": self.message
        }


def decide_deletion(report_count: int) -> DeletionDecision:
    """Retain accounts that own reports, remove the rest."""
    return DeletionDecision(retain=report_count > 0, report_count=report_count)


def retention_changes(now: datetime) -> Dict[str, Any]:
    """Field changes applied to an account kept by the deletion policy."""
    return {"status": AccountStatus.BANNED.value, "deactivated_at": now}
