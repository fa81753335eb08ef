# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the Report Abandono platform.
"""

import re
from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity, utc_now
from .enums import (
    ActorRole,
    AccountStatus,
    ReportStatus,
    MediaKind,
    ROLE_STATUSES
)

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
DISPLAY_CODE_WIDTH = 6


def format_display_code(prefix: str, identifier: int) -> str:
    """Render an integer identifier as a fixed-width, zero-padded code."""
    return f"{prefix}-{identifier:0{DISPLAY_CODE_WIDTH}d}"


class Actor(BaseEntity):
    """Any authenticated principal: individual, organization or administrator."""

    email: str = Field(..., description="Login e-mail address")
    password_hash: str = Field(..., description="Credential hash owned by the auth collaborator")
    role: ActorRole = Field(..., description="Actor role")
    status: AccountStatus = Field(..., description="Trust or approval status")
    full_name: Optional[str] = Field(None, max_length=200, description="Person or organization name")
    cpf: Optional[str] = Field(None, description="Individual taxpayer number")
    cnpj: Optional[str] = Field(None, description="Organization registry number")
    phone: Optional[str] = Field(None, max_length=40, description="Contact phone")
    address: Optional[str] = Field(None, max_length=500, description="Postal address")
    ban_reason: Optional[str] = Field(None, description="Reason given by the reporting organization")
    banned_by: Optional[int] = Field(None, description="Organization that reported the account")
    banned_at: Optional[datetime] = Field(None, description="When the account was reported")
    rejection_reason: Optional[str] = Field(None, description="Why the organization was rejected")
    deactivated_at: Optional[datetime] = Field(None, description="Set when a self-deletion retained the account")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if not re.match(EMAIL_PATTERN, v.strip().lower()):
            raise ValueError('Invalid email format')
        return v.strip().lower()

    @model_validator(mode='after')
    def validate_role_status(self):
        """Each role may only hold its own set of statuses."""
        if AccountStatus(self.status) not in ROLE_STATUSES[ActorRole(self.role)]:
            raise ValueError(f'Status {self.status} is not valid for role {self.role}')
        return self

    def is_banned(self) -> bool:
        """Check if the account is banned or deactivated."""
        return self.status == AccountStatus.BANNED

    def is_deactivated(self) -> bool:
        """Check if a self-deletion retained this account."""
        return self.deactivated_at is not None

    def public_profile(self) -> Dict[str, Any]:
        """Profile fields safe to return to clients."""
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "fullName": self.full_name,
            "cpf": self.cpf,
            "cnpj": self.cnpj,
            "phone": self.phone,
            "address": self.address,
            "createdAt": self.created_at.isoformat()
        }


class Media(BaseModel):
    """Attachment stored alongside its report."""

    model_config = ConfigDict(use_enum_values=True)

    id: Optional[int] = Field(None, description="Media identifier")
    report_id: Optional[int] = Field(None, description="Owning report")
    file_ref: str = Field(..., min_length=1, description="Stored-file reference")
    content_type: str = Field(..., description="Declared content type")
    kind: MediaKind = Field(..., description="Image or video")
    uploaded_at: datetime = Field(default_factory=utc_now, description="Upload timestamp")


class HistoryEntry(BaseModel):
    """One immutable audit record of a report status transition."""

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    id: int = Field(..., ge=1, description="Position in the report history, starting at 1")
    report_id: Optional[int] = Field(None, description="Owning report")
    prior_status: Optional[ReportStatus] = Field(None, description="Status before the transition")
    new_status: ReportStatus = Field(..., description="Status after the transition")
    observation: Optional[str] = Field(None, description="Solution text or justification")
    actor_id: Optional[int] = Field(None, description="Actor that issued the intent")
    timestamp: datetime = Field(default_factory=utc_now, description="Transition timestamp")

    def as_tuple(self):
        """Compact (prior, new, observation) view, handy for comparisons."""
        if self.observation is None:
            return (self.prior_status, self.new_status)
        return (self.prior_status, self.new_status, self.observation)


class Report(BaseEntity):
    """A filed abandonment incident."""

    description: str = Field(..., min_length=1, max_length=2000, description="What was observed")
    category: str = Field(..., min_length=1, max_length=100, description="Kind of record")
    location: str = Field(..., min_length=1, max_length=500, description="Free-text location")
    latitude: Optional[float] = Field(None, ge=-90, le=90, description="Latitude")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="Longitude")
    status: ReportStatus = Field(default=ReportStatus.SUBMITTED, description="Lifecycle status")
    creator_id: int = Field(..., description="Actor who filed the report")
    assigned_organization_id: Optional[int] = Field(None, description="Organization holding the claim")
    media: List[Media] = Field(default_factory=list, description="Attached media")
    history: List[HistoryEntry] = Field(default_factory=list, description="Audit trail, chronological")

    @model_validator(mode='after')
    def validate_assignment_invariant(self):
        """A submitted report is never assigned."""
        if self.status == ReportStatus.SUBMITTED and self.assigned_organization_id is not None:
            raise ValueError('A submitted report cannot have an assigned organization')
        return self

    @property
    def display_code(self) -> str:
        """Human-facing protocol code derived from the identifier."""
        return format_display_code("PROT", self.id or 0)

    def is_available(self) -> bool:
        """Submitted and not yet claimed by any organization."""
        return self.status == ReportStatus.SUBMITTED and self.assigned_organization_id is None

    def latest_history(self) -> Optional[HistoryEntry]:
        """Most recent history entry, if any."""
        return self.history[-1] if self.history else None


class UserContext(BaseModel):
    """Validated actor identity handed to the core by the authentication layer."""

    actor_id: int = Field(..., description="Authenticated actor ID")
    role: ActorRole = Field(..., description="Role carried by the bearer credential")
    email: Optional[str] = Field(None, description="Actor email")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    def has_role(self, *roles: ActorRole) -> bool:
        """Check if the actor holds any of the given roles."""
        return self.role in roles
