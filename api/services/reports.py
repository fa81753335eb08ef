# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Report workflow service: submission, exclusive claiming, resolution,
contest and deletion, plus the read paths each role is allowed.
"""

import logging
from typing import Any, Dict, List, Optional
from opentelemetry import trace

from models.entities import Report, UserContext
from models.enums import ActorRole, ReportAction, ReportStatus
from domain.authorization import require_role, require_not_banned, require_report_visible
from domain.errors import NotFoundError, ConflictError
from domain.reports import (
    DEFAULT_MAX_MEDIA_FILES,
    build_submission,
    validate_media_types,
    guard_deletion,
    guard_transition,
    require_text,
    transition_condition
)
from .audit import AuditTrail
from .store import WorkflowStore
from .workflow import workflow_operation

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Label used in validation messages for the text each intent requires
TEXT_LABELS = {
    ReportAction.CONCLUDE: "solution",
    ReportAction.DENY: "justification",
    ReportAction.CONTEST: "justification",
}


class ReportService:
    """Report lifecycle operations against an injected store."""

    def __init__(
        self,
        store: WorkflowStore,
        audit: Optional[AuditTrail] = None,
        max_media_files: int = DEFAULT_MAX_MEDIA_FILES
    ):
        self.store = store
        self.audit = audit or AuditTrail()
        self.max_media_files = max_media_files

    def _load(self, report_id: int) -> Report:
        report = self.store.get_report(report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} not found")
        return report

    @workflow_operation("authorize_submission")
    def authorize_submission(self, user_context: UserContext, content_types: List[Optional[str]]) -> None:
        """
        Checks that need no stored media: caller role, account standing,
        attachment count and declared types. Run before any file is written.
        """
        require_role(user_context, ActorRole.INDIVIDUAL, ActorRole.ORGANIZATION)
        require_not_banned(self.store.get_actor(user_context.actor_id))
        validate_media_types(content_types, self.max_media_files)

    @workflow_operation("submit_report")
    def submit(
        self,
        user_context: UserContext,
        fields: Dict[str, Any],
        uploads: Optional[List[Dict[str, Any]]] = None
    ) -> Report:
        """
        File a new report with its media.

        The report, its media and its creation entry are written together.
        """
        require_role(user_context, ActorRole.INDIVIDUAL, ActorRole.ORGANIZATION)
        require_not_banned(self.store.get_actor(user_context.actor_id))

        report = build_submission(fields, uploads or [], user_context.actor_id, self.max_media_files)
        report.history.append(
            self.audit.new_entry(None, ReportStatus.SUBMITTED, user_context.actor_id)
        )

        stored = self.store.insert_report(report)
        self.audit.log_transition(stored, stored.history[0], user_context)
        return stored

    def _transition(
        self,
        user_context: UserContext,
        report_id: int,
        action: ReportAction,
        text: Optional[str] = None
    ) -> Report:
        observation = None
        if action in TEXT_LABELS:
            observation = require_text(text, TEXT_LABELS[action])

        report = self._load(report_id)
        new_status = guard_transition(report, action, user_context.actor_id)
        expected, changes = transition_condition(action, user_context.actor_id)
        entry = self.audit.new_entry(report, new_status, user_context.actor_id, observation)

        updated = self.store.compare_and_set_report(report_id, expected, changes, entry)
        if updated is None:
            # Lost a race; re-check against the state that won
            logger.info(
                "Conditional report update lost a race",
                extra={"report_id": report_id, "action": action.value, "actor_id": user_context.actor_id}
            )
            current = self._load(report_id)
            guard_transition(current, action, user_context.actor_id)
            raise ConflictError("Report was modified concurrently, reload and retry")

        self.audit.log_transition(updated, entry, user_context)
        return updated

    @workflow_operation("claim_report")
    def claim(self, user_context: UserContext, report_id: int) -> Report:
        """Take exclusive ownership of an unclaimed report."""
        require_role(user_context, ActorRole.ORGANIZATION)
        return self._transition(user_context, report_id, ReportAction.CLAIM)

    @workflow_operation("conclude_report")
    def conclude(self, user_context: UserContext, report_id: int, solution: Optional[str]) -> Report:
        """Resolve a claimed report, recording the solution."""
        require_role(user_context, ActorRole.ORGANIZATION)
        return self._transition(user_context, report_id, ReportAction.CONCLUDE, solution)

    @workflow_operation("deny_report")
    def deny(self, user_context: UserContext, report_id: int, justification: Optional[str]) -> Report:
        """Refuse a claimed report, recording the justification."""
        require_role(user_context, ActorRole.ORGANIZATION)
        return self._transition(user_context, report_id, ReportAction.DENY, justification)

    @workflow_operation("contest_report")
    def contest(self, user_context: UserContext, report_id: int, justification: Optional[str]) -> Report:
        """Creator disputes a concluded report, moving it to denied."""
        return self._transition(user_context, report_id, ReportAction.CONTEST, justification)

    @workflow_operation("delete_report")
    def delete(self, user_context: UserContext, report_id: int) -> Dict[str, Any]:
        """Remove a submitted report with its media and history."""
        report = self._load(report_id)
        guard_deletion(report, user_context.actor_id)

        expected = {"status": ReportStatus.SUBMITTED.value, "creator_id": user_context.actor_id}
        if not self.store.delete_report(report_id, expected):
            current = self._load(report_id)
            guard_deletion(current, user_context.actor_id)
            raise ConflictError("Report was modified concurrently, reload and retry")

        logger.info(
            "Report deleted by its creator",
            extra={"report_id": report_id, "actor_id": user_context.actor_id}
        )
        return {"id": report_id, "deleted": True}

    @workflow_operation("list_own_reports")
    def list_own(self, user_context: UserContext) -> List[Report]:
        """Reports filed by the caller, most recent first."""
        return self.store.list_reports(creator_id=user_context.actor_id)

    @workflow_operation("list_organization_reports")
    def list_for_organization(self, user_context: UserContext) -> List[Report]:
        """Available reports plus those assigned to the calling organization."""
        require_role(user_context, ActorRole.ORGANIZATION)
        return self.store.list_available_for(user_context.actor_id)

    @workflow_operation("get_report_detail")
    def get_detail(self, user_context: UserContext, report_id: int) -> Report:
        """Full report, visible to its creator and to organizations that may act on it."""
        return require_report_visible(user_context, self.store.get_report(report_id), report_id)

    @workflow_operation("list_concluded_reports")
    def list_concluded(self) -> List[Report]:
        """Concluded reports with coordinates, for the public map."""
        reports = self.store.list_reports(status=ReportStatus.CONCLUDED.value)
        return [r for r in reports if r.latitude is not None and r.longitude is not None]
