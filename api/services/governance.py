# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Governance service: organization approval, individual trust status and the
administrator queue.

Approval and rejection announce themselves on the event publisher only after
the status change is stored. A publishing failure is logged and never turns
a stored transition into a failed operation.
"""

import logging
from typing import Any, Dict, List, Optional
from opentelemetry import trace

from models.base import utc_now
from models.entities import Actor, UserContext
from models.enums import ActorRole, AccountStatus, ReportStatus
from domain.accounts import (
    approval_transition,
    ban_transition,
    guard_ban_review,
    rejection_transition,
    revert_ban_transition
)
from domain.authorization import check_can_report_user, require_role
from domain.errors import ConflictError, NotFoundError
from domain.governance import (
    build_denied_report_detail,
    build_denied_report_item,
    build_pending_organization_item,
    build_reported_user_item
)
from .amqp import EventPublisher, ORGANIZATION_APPROVED, ORGANIZATION_REJECTED
from .audit import AuditTrail
from .store import WorkflowStore
from .workflow import workflow_operation

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class GovernanceService:
    """Administrator and organization governance over accounts."""

    def __init__(self, store: WorkflowStore, publisher: EventPublisher):
        self.store = store
        self.publisher = publisher

    def _load_actor(self, actor_id: int) -> Actor:
        actor = self.store.get_actor(actor_id)
        if actor is None:
            raise NotFoundError(f"Account {actor_id} not found")
        return actor

    def _notify(self, event_type: str, org: Actor, reason: Optional[str] = None) -> None:
        """Publish an account event; failures are logged and swallowed."""
        payload = {
            "organization_id": org.id,
            "email": org.email,
            "name": org.full_name,
            "status": org.status
        }
        if reason is not None:
            payload["reason"] = reason

        try:
            result = self.publisher.publish_event(event_type, payload)
            if not result.success:
                logger.error(
                    "Account notification was not delivered",
                    extra={"event": event_type, "organization_id": org.id, "error": result.error}
                )
        except Exception as e:
            logger.error(
                "Account notification raised",
                extra={"event": event_type, "organization_id": org.id, "error": str(e)},
                exc_info=True
            )

    def _write_actor(self, actor: Actor, expected: Dict[str, Any], changes: Dict[str, Any]) -> Actor:
        updated = self.store.compare_and_set_actor(actor.id, expected, changes)
        if updated is None:
            raise ConflictError(f"Account {actor.id} changed concurrently, reload and retry")
        return updated

    @workflow_operation("approve_organization")
    def approve_org(self, user_context: UserContext, org_id: int) -> Actor:
        """Let an organization authenticate."""
        require_role(user_context, ActorRole.ADMINISTRATOR)
        org = self._load_actor(org_id)
        expected, changes = approval_transition(org)
        updated = self._write_actor(org, expected, changes)

        logger.info(
            "Organization approved",
            extra={"organization_id": org_id, "administrator_id": user_context.actor_id}
        )
        self._notify(ORGANIZATION_APPROVED, updated)
        return updated

    @workflow_operation("reject_organization")
    def reject_org(self, user_context: UserContext, org_id: int, reason: Optional[str]) -> Actor:
        """Refuse an organization, keeping the reason on the account."""
        require_role(user_context, ActorRole.ADMINISTRATOR)
        org = self._load_actor(org_id)
        expected, changes = rejection_transition(org, reason)
        updated = self._write_actor(org, expected, changes)

        logger.info(
            "Organization rejected",
            extra={"organization_id": org_id, "administrator_id": user_context.actor_id}
        )
        self._notify(ORGANIZATION_REJECTED, updated, updated.rejection_reason)
        return updated

    @workflow_operation("report_user")
    def report_user(self, user_context: UserContext, report_id: int, reason: Optional[str]) -> Actor:
        """
        Ban the creator of a report on behalf of an organization.

        This acts on the account only; the report history is untouched.
        """
        require_role(user_context, ActorRole.ORGANIZATION)
        report = self.store.get_report(report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found")

        scope = check_can_report_user(user_context, report)
        if not scope.allowed:
            raise NotFoundError(f"Report {report_id} not found")

        target = self._load_actor(report.creator_id)
        expected, changes = ban_transition(target, user_context.actor_id, reason, utc_now())
        updated = self._write_actor(target, expected, changes)

        logger.warning(
            "User reported by organization",
            extra={
                "target_id": target.id,
                "organization_id": user_context.actor_id,
                "report_id": report_id
            }
        )
        return updated

    @workflow_operation("confirm_ban")
    def confirm_ban(self, user_context: UserContext, user_id: int) -> Actor:
        """Acknowledge a ban; the account is returned unchanged."""
        require_role(user_context, ActorRole.ADMINISTRATOR)
        target = self._load_actor(user_id)
        guard_ban_review(target)

        logger.info(
            "Ban confirmed",
            extra={"target_id": user_id, "administrator_id": user_context.actor_id}
        )
        return target

    @workflow_operation("revert_ban")
    def revert_ban(self, user_context: UserContext, user_id: int) -> Actor:
        """Reinstate a banned individual."""
        require_role(user_context, ActorRole.ADMINISTRATOR)
        target = self._load_actor(user_id)
        expected, changes = revert_ban_transition(target)
        updated = self._write_actor(target, expected, changes)

        logger.info(
            "Ban reverted",
            extra={"target_id": user_id, "administrator_id": user_context.actor_id}
        )
        return updated

    @workflow_operation("list_pending_items")
    def list_pending_items(self, user_context: UserContext) -> List[Dict[str, Any]]:
        """
        Administrator queue: pending organizations, reported users, denied reports.

        Accounts retained by a self-deletion are banned too but are not
        reports against anyone, so they stay out of the queue.
        """
        require_role(user_context, ActorRole.ADMINISTRATOR)

        with tracer.start_as_current_span("governance.build_queue") as span:
            pending = self.store.list_actors(
                role=ActorRole.ORGANIZATION.value,
                status=AccountStatus.PENDING_APPROVAL.value
            )
            reported = self.store.list_actors(
                role=ActorRole.INDIVIDUAL.value,
                status=AccountStatus.BANNED.value,
                deactivated_at=None
            )
            denied = self.store.list_reports(status=ReportStatus.DENIED.value)

            creators: Dict[int, Optional[Actor]] = {}
            for report in denied:
                if report.creator_id not in creators:
                    creators[report.creator_id] = self.store.get_actor(report.creator_id)

            items = [build_pending_organization_item(org) for org in pending]
            items += [
                build_reported_user_item(
                    user, self.store.list_reports(creator_id=user.id), AuditTrail.display_order
                )
                for user in reported
            ]
            items += [
                build_denied_report_item(r, creators[r.creator_id], AuditTrail.display_order)
                for r in denied
            ]

            span.set_attributes({
                "queue.pending_organizations": len(pending),
                "queue.reported_users": len(reported),
                "queue.denied_reports": len(denied)
            })
            return items

    @workflow_operation("get_denied_report")
    def get_denied_report(self, user_context: UserContext, report_id: int) -> Dict[str, Any]:
        """Denied report with its denial entries, for administrator review."""
        require_role(user_context, ActorRole.ADMINISTRATOR)
        report = self.store.get_report(report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found")
        if report.status != ReportStatus.DENIED:
            raise ConflictError(f"Report {report_id} is not denied")
        return build_denied_report_detail(
            report, self.store.get_actor(report.creator_id), AuditTrail.display_order
        )
