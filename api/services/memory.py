# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
In-memory implementation of the workflow store.

A single lock serializes every operation, which makes each conditional write
an atomic check-and-set. Callers always receive copies, never the stored
objects.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from models.entities import Actor, Report, HistoryEntry
from models.enums import ReportStatus
from domain.accounts import DeletionDecision
from domain.errors import ConflictError
from .store import WorkflowStore

logger = logging.getLogger(__name__)


def _matches(entity, expected: Dict[str, Any]) -> bool:
    return all(getattr(entity, field) == value for field, value in expected.items())


def _newest_first(items):
    return sorted(items, key=lambda item: (item.created_at, item.id), reverse=True)


class InMemoryStore(WorkflowStore):
    """Thread-safe store backed by dictionaries, used by tests and local runs."""

    def __init__(self):
        self._lock = threading.Lock()
        self._reports: Dict[int, Report] = {}
        self._actors: Dict[int, Actor] = {}
        self._counters: Dict[str, int] = {}
        logger.info("In-memory store initialized")

    def _next_id(self, sequence: str, count: int = 1) -> int:
        value = self._counters.get(sequence, 0) + count
        self._counters[sequence] = value
        return value

    # Reports

    def insert_report(self, report: Report) -> Report:
        with self._lock:
            data = report.model_dump()
            report_id = self._next_id("reports")
            data["id"] = report_id

            last_media_id = self._next_id("media", len(data["media"]))
            first_media_id = last_media_id - len(data["media"]) + 1
            for offset, media in enumerate(data["media"]):
                media["id"] = first_media_id + offset
                media["report_id"] = report_id
            for entry in data["history"]:
                entry["report_id"] = report_id

            stored = Report.model_validate(data)
            self._reports[report_id] = stored
            return stored.model_copy(deep=True)

    def get_report(self, report_id: int) -> Optional[Report]:
        with self._lock:
            report = self._reports.get(report_id)
            return report.model_copy(deep=True) if report else None

    def compare_and_set_report(
        self,
        report_id: int,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        entry: HistoryEntry
    ) -> Optional[Report]:
        with self._lock:
            report = self._reports.get(report_id)
            if report is None or not _matches(report, expected):
                return None
            if len(report.history) != entry.id - 1:
                return None

            data = report.model_dump()
            data.update(changes)
            data["history"].append(entry.model_dump())
            updated = Report.model_validate(data)
            self._reports[report_id] = updated
            return updated.model_copy(deep=True)

    def delete_report(self, report_id: int, expected: Dict[str, Any]) -> bool:
        with self._lock:
            report = self._reports.get(report_id)
            if report is None or not _matches(report, expected):
                return False
            del self._reports[report_id]
            return True

    def list_reports(self, **filters: Any) -> List[Report]:
        with self._lock:
            found = [r for r in self._reports.values() if _matches(r, filters)]
            return [r.model_copy(deep=True) for r in _newest_first(found)]

    def list_available_for(self, organization_id: int) -> List[Report]:
        with self._lock:
            found = [
                r for r in self._reports.values()
                if r.assigned_organization_id == organization_id
                or (r.status == ReportStatus.SUBMITTED and r.assigned_organization_id is None)
            ]
            return [r.model_copy(deep=True) for r in _newest_first(found)]

    # Actors

    def insert_actor(self, actor: Actor) -> Actor:
        with self._lock:
            if any(a.email == actor.email for a in self._actors.values()):
                raise ConflictError("E-mail already registered")
            data = actor.model_dump()
            data["id"] = self._next_id("actors")
            stored = Actor.model_validate(data)
            self._actors[stored.id] = stored
            return stored.model_copy(deep=True)

    def get_actor(self, actor_id: int) -> Optional[Actor]:
        with self._lock:
            actor = self._actors.get(actor_id)
            return actor.model_copy(deep=True) if actor else None

    def get_actor_by_email(self, email: str) -> Optional[Actor]:
        email = (email or "").strip().lower()
        with self._lock:
            for actor in self._actors.values():
                if actor.email == email:
                    return actor.model_copy(deep=True)
            return None

    def compare_and_set_actor(
        self,
        actor_id: int,
        expected: Dict[str, Any],
        changes: Dict[str, Any]
    ) -> Optional[Actor]:
        with self._lock:
            actor = self._actors.get(actor_id)
            if actor is None or not _matches(actor, expected):
                return None
            data = actor.model_dump()
            data.update(changes)
            updated = Actor.model_validate(data)
            self._actors[actor_id] = updated
            return updated.model_copy(deep=True)

    def list_actors(self, **filters: Any) -> List[Actor]:
        with self._lock:
            found = [a for a in self._actors.values() if _matches(a, filters)]
            return [a.model_copy(deep=True) for a in _newest_first(found)]

    def apply_deletion_policy(
        self,
        actor_id: int,
        policy: Callable[[int], DeletionDecision],
        retain_changes: Dict[str, Any]
    ) -> Optional[DeletionDecision]:
        with self._lock:
            actor = self._actors.get(actor_id)
            if actor is None:
                return None
            count = sum(1 for r in self._reports.values() if r.creator_id == actor_id)
            decision = policy(count)
            if decision.retain:
                data = actor.model_dump()
                data.update(retain_changes)
                self._actors[actor_id] = Actor.model_validate(data)
            else:
                del self._actors[actor_id]
            return decision

    def health_check(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "status": "healthy",
                "backend": "memory",
                "reports": len(self._reports),
                "actors": len(self._actors)
            }
