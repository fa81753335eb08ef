# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the Report Abandono platform.
"""

from enum import Enum


class ActorRole(str, Enum):
    """Role carried by every authenticated principal."""
    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"
    ADMINISTRATOR = "administrator"


class AccountStatus(str, Enum):
    """Trust status (individuals) or approval status (organizations)."""
    APPROVED = "approved"
    PENDING_APPROVAL = "pending_approval"
    REJECTED = "rejected"
    BANNED = "banned"


class ReportStatus(str, Enum):
    """Report lifecycle status enumeration."""
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    DENIED = "denied"
    CONCLUDED = "concluded"


class ReportAction(str, Enum):
    """Intents that move a report between statuses."""
    CLAIM = "claim"
    CONCLUDE = "conclude"
    DENY = "deny"
    CONTEST = "contest"


class MediaKind(str, Enum):
    """Attachment kind, derived from the declared content type."""
    IMAGE = "image"
    VIDEO = "video"


# Statuses each role may legitimately hold
ROLE_STATUSES = {
    ActorRole.INDIVIDUAL: frozenset({AccountStatus.APPROVED, AccountStatus.BANNED}),
    ActorRole.ORGANIZATION: frozenset({
        AccountStatus.PENDING_APPROVAL,
        AccountStatus.APPROVED,
        AccountStatus.REJECTED,
        AccountStatus.BANNED,
    }),
    ActorRole.ADMINISTRATOR: frozenset({AccountStatus.APPROVED, AccountStatus.BANNED}),
}
