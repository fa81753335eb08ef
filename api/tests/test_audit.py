# SPDX-License-Identifier: Apache-2.0

"""
Tests for history entry construction, ordering and verification.
"""

from datetime import datetime, timedelta, timezone

from models.entities import Report, HistoryEntry
from models.enums import ReportStatus
from services.audit import AuditTrail, LEGAL_STEPS


def _clock(*moments):
    """Clock returning the given instants in order."""
    remaining = list(moments)
    return lambda: remaining.pop(0)


T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _report(history, status=ReportStatus.SUBMITTED, assigned=None):
    return Report(
        id=1, description="d", category="c", location="l", creator_id=10,
        status=status, assigned_organization_id=assigned, history=history
    )


class TestNewEntry:

    def test_creation_entry(self):
        trail = AuditTrail(clock=_clock(T0))
        entry = trail.new_entry(None, ReportStatus.SUBMITTED, 10)
        assert entry.id == 1
        assert entry.prior_status is None
        assert entry.timestamp == T0

    def test_next_entry_continues_sequence(self):
        trail = AuditTrail(clock=_clock(T0, T0 + timedelta(minutes=5)))
        first = trail.new_entry(None, ReportStatus.SUBMITTED, 10)
        report = _report([first])

        entry = trail.new_entry(report, ReportStatus.IN_REVIEW, 20)
        assert entry.id == 2
        assert entry.report_id == 1
        assert entry.prior_status == ReportStatus.SUBMITTED
        assert entry.actor_id == 20

    def test_timestamp_never_goes_backwards(self):
        trail = AuditTrail(clock=_clock(T0, T0 - timedelta(hours=1)))
        first = trail.new_entry(None, ReportStatus.SUBMITTED, 10)
        entry = trail.new_entry(_report([first]), ReportStatus.IN_REVIEW, 20)
        assert entry.timestamp == T0


class TestOrdering:

    def test_display_and_replay(self):
        entries = [
            HistoryEntry(id=1, new_status=ReportStatus.SUBMITTED, timestamp=T0),
            HistoryEntry(
                id=2, prior_status=ReportStatus.SUBMITTED, new_status=ReportStatus.IN_REVIEW,
                timestamp=T0 + timedelta(minutes=1)
            )
        ]
        report = _report(entries, ReportStatus.IN_REVIEW, assigned=20)
        assert [e.id for e in AuditTrail.display_order(report)] == [2, 1]
        assert [e.id for e in AuditTrail.replay_order(report)] == [1, 2]


class TestVerify:

    def test_legal_steps(self):
        assert (None, ReportStatus.SUBMITTED) in LEGAL_STEPS
        assert (ReportStatus.CONCLUDED, ReportStatus.DENIED) in LEGAL_STEPS
        assert (ReportStatus.DENIED, ReportStatus.SUBMITTED) not in LEGAL_STEPS

    def test_empty_history(self):
        valid, problems = AuditTrail.verify(_report([]))
        assert not valid
        assert problems == ["History is empty"]

    def test_skipped_transition(self):
        entries = [
            HistoryEntry(id=1, new_status=ReportStatus.SUBMITTED, timestamp=T0),
            HistoryEntry(
                id=2, prior_status=ReportStatus.SUBMITTED, new_status=ReportStatus.CONCLUDED,
                timestamp=T0 + timedelta(minutes=1)
            )
        ]
        valid, problems = AuditTrail.verify(_report(entries, ReportStatus.CONCLUDED, assigned=20))
        assert not valid
        assert any("illegal transition" in p for p in problems)

    def test_replayed_chronologically(self):
        entries = [
            HistoryEntry(
                id=2, prior_status=ReportStatus.SUBMITTED, new_status=ReportStatus.IN_REVIEW,
                timestamp=T0 + timedelta(minutes=1)
            ),
            HistoryEntry(id=1, new_status=ReportStatus.SUBMITTED, timestamp=T0)
        ]
        assert AuditTrail.verify(_report(entries, ReportStatus.IN_REVIEW, assigned=20)) == (True, [])

    def test_clock_regression_is_out_of_sequence(self):
        entries = [
            HistoryEntry(id=1, new_status=ReportStatus.SUBMITTED, timestamp=T0),
            HistoryEntry(
                id=2, prior_status=ReportStatus.SUBMITTED, new_status=ReportStatus.IN_REVIEW,
                timestamp=T0 - timedelta(minutes=1)
            )
        ]
        valid, problems = AuditTrail.verify(_report(entries, ReportStatus.IN_REVIEW, assigned=20))
        assert not valid
        assert "Entry 2 is out of sequence at position 1" in problems

    def test_status_mismatch(self):
        entries = [HistoryEntry(id=1, new_status=ReportStatus.SUBMITTED, timestamp=T0)]
        valid, problems = AuditTrail.verify(_report(entries, ReportStatus.IN_REVIEW, assigned=20))
        assert not valid
        assert "Latest entry does not match the report status" in problems


class TestLogTransition:

    def test_emits_structured_record(self, caplog):
        entry = HistoryEntry(id=1, report_id=1, new_status=ReportStatus.SUBMITTED, actor_id=10, timestamp=T0)
        report = _report([entry])

        with caplog.at_level("INFO", logger="services.audit"):
            AuditTrail().log_transition(report, entry)

        record = next(r for r in caplog.records if r.getMessage() == "Report transition recorded")
        assert record.report_id == 1
        assert record.new_status == "submitted"
        assert record.audit_category == "report_transition"
