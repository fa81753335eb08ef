# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Audit trail for report status transitions with OpenTelemetry correlation.

History entries live inside their report and are written by the store in the
same atomic write as the status change. This module builds those entries,
orders them for display or replay, verifies a trail and emits the structured
log record for every committed transition.
"""

import logging
from typing import List, Optional, Tuple
from opentelemetry import trace

from models.base import utc_now
from models.entities import Report, HistoryEntry, UserContext
from models.enums import ReportStatus
from domain.reports import TRANSITIONS

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Status pairs the state machine can produce, creation included
LEGAL_STEPS = {(None, ReportStatus.SUBMITTED)} | {
    (prior, new) for (prior, _action), new in TRANSITIONS.items()
}


class AuditTrail:
    """Builds, orders and verifies report history entries."""

    def __init__(self, clock=utc_now):
        self.clock = clock

    def new_entry(
        self,
        report: Optional[Report],
        new_status: ReportStatus,
        actor_id: Optional[int],
        observation: Optional[str] = None
    ) -> HistoryEntry:
        """
        Build the next history entry for ``report``.

        Pass ``report=None`` for the creation entry. The timestamp never goes
        behind the latest recorded entry, so history stays ordered even if the
        clock steps backwards.
        """
        now = self.clock()
        if report is None:
            return HistoryEntry(
                id=1,
                prior_status=None,
                new_status=new_status,
                observation=observation,
                actor_id=actor_id,
                timestamp=now
            )

        latest = report.latest_history()
        if latest is not None and latest.timestamp > now:
            now = latest.timestamp

        return HistoryEntry(
            id=len(report.history) + 1,
            report_id=report.id,
            prior_status=report.status,
            new_status=new_status,
            observation=observation,
            actor_id=actor_id,
            timestamp=now
        )

    @staticmethod
    def display_order(report: Report) -> List[HistoryEntry]:
        """Most recent first."""
        return list(reversed(report.history))

    @staticmethod
    def replay_order(report: Report) -> List[HistoryEntry]:
        """Chronological ascending."""
        return sorted(report.history, key=lambda entry: (entry.timestamp, entry.id))

    @staticmethod
    def verify(report: Report) -> Tuple[bool, List[str]]:
        """
        Check that the history accounts for every status change.

        Entries are replayed chronologically; an entry whose timestamp sorts
        it ahead of an earlier id shows up as out of sequence.

        Returns:
            (is_valid, problems)
        """
        problems = []
        history = AuditTrail.replay_order(report)

        if not history:
            return False, ["History is empty"]

        first = history[0]
        if first.prior_status is not None or first.new_status != ReportStatus.SUBMITTED:
            problems.append("First entry must record creation as submitted")

        previous: Optional[HistoryEntry] = None
        for position, entry in enumerate(history, start=1):
            if entry.id != position:
                problems.append(f"Entry {entry.id} is out of sequence at position {position}")
            step = (
                ReportStatus(entry.prior_status) if entry.prior_status else None,
                ReportStatus(entry.new_status)
            )
            if step not in LEGAL_STEPS:
                problems.append(f"Entry {entry.id} records an illegal transition {step}")
            if previous is not None and entry.prior_status != previous.new_status:
                problems.append(f"Entry {entry.id} does not continue from entry {previous.id}")
            previous = entry

        if history[-1].new_status != report.status:
            problems.append("Latest entry does not match the report status")

        return len(problems) == 0, problems

    def log_transition(
        self,
        report: Report,
        entry: HistoryEntry,
        user_context: Optional[UserContext] = None
    ) -> None:
        """Emit the span event and structured log record for a committed transition."""
        with tracer.start_as_current_span("audit.log_transition") as span:
            span_context = span.get_span_context()
            trace_id = format(span_context.trace_id, "032x") if span_context.is_valid else None

            span.set_attributes({
                "audit.report_id": report.id,
                "audit.entry_id": entry.id,
                "audit.prior_status": entry.prior_status or "",
                "audit.new_status": entry.new_status,
                "audit.actor_id": entry.actor_id or 0
            })

            logger.info(
                "Report transition recorded",
                extra={
                    "report_id": report.id,
                    "entry_id": entry.id,
                    "prior_status": entry.prior_status,
                    "new_status": entry.new_status,
                    "actor_id": entry.actor_id,
                    "ip_address": user_context.ip_address if user_context else None,
                    "trace_id": trace_id,
                    "audit_category": "report_transition"
                }
            )
