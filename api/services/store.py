# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Repository contract shared by the MongoDB and in-memory stores.

Every mutating method is a single atomic unit against the backing store.
Conditional writes take an ``expected`` mapping of field values that must
still hold when the write lands; a ``None`` return means the condition no
longer held and nothing was written.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from models.entities import Actor, Report, HistoryEntry
from domain.accounts import DeletionDecision


class WorkflowStore(ABC):
    """Persistence operations the workflow services depend on."""

    # Reports

    @abstractmethod
    def insert_report(self, report: Report) -> Report:
        """Persist a new report with its media and history, assigning identifiers."""

    @abstractmethod
    def get_report(self, report_id: int) -> Optional[Report]:
        """Fetch a report with embedded media and history."""

    @abstractmethod
    def compare_and_set_report(
        self,
        report_id: int,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        entry: HistoryEntry
    ) -> Optional[Report]:
        """
        Apply ``changes`` and append ``entry`` if ``expected`` still holds.

        The history must still have ``entry.id - 1`` entries, so two writers
        acting on the same snapshot cannot both append.
        """

    @abstractmethod
    def delete_report(self, report_id: int, expected: Dict[str, Any]) -> bool:
        """Remove a report with its media and history if ``expected`` still holds."""

    @abstractmethod
    def list_reports(self, **filters: Any) -> List[Report]:
        """Reports matching equality filters, most recent first."""

    @abstractmethod
    def list_available_for(self, organization_id: int) -> List[Report]:
        """Unclaimed submitted reports plus those assigned to the organization, most recent first."""

    # Actors

    @abstractmethod
    def insert_actor(self, actor: Actor) -> Actor:
        """Persist a new actor; raises ConflictError on a duplicate e-mail."""

    @abstractmethod
    def get_actor(self, actor_id: int) -> Optional[Actor]:
        """Fetch an actor by identifier."""

    @abstractmethod
    def get_actor_by_email(self, email: str) -> Optional[Actor]:
        """Fetch an actor by login e-mail."""

    @abstractmethod
    def compare_and_set_actor(
        self,
        actor_id: int,
        expected: Dict[str, Any],
        changes: Dict[str, Any]
    ) -> Optional[Actor]:
        """Apply ``changes`` if ``expected`` still holds; returns the updated actor."""

    @abstractmethod
    def list_actors(self, **filters: Any) -> List[Actor]:
        """Actors matching equality filters, most recent first."""

    @abstractmethod
    def apply_deletion_policy(
        self,
        actor_id: int,
        policy: Callable[[int], DeletionDecision],
        retain_changes: Dict[str, Any]
    ) -> Optional[DeletionDecision]:
        """
        Count the actor's reports, ask ``policy`` and either retain or remove.

        Counting and acting happen in one transaction. Returns ``None`` when
        the actor does not exist.
        """

    # Operations

    @abstractmethod
    def health_check(self) -> Dict[str, Any]:
        """Report store reachability."""
