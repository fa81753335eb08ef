# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Account service: registration, login, profile management and self-deletion.
"""

import logging
from typing import Any, Dict, Optional

from models.base import utc_now
from models.entities import Actor, UserContext
from models.enums import ActorRole, AccountStatus
from domain.accounts import (
    build_actor,
    decide_deletion,
    parse_profile_update,
    parse_registration,
    retention_changes
)
from domain.authorization import check_login_allowed, require_not_banned
from domain.errors import AuthenticationError, ConflictError, NotFoundError
from domain.reports import require_text
from .auth import AuthService
from .store import WorkflowStore
from .workflow import workflow_operation

logger = logging.getLogger(__name__)


class AccountService:
    """Account lifecycle operations; credential mechanics are delegated to AuthService."""

    def __init__(self, store: WorkflowStore, auth_service: AuthService):
        self.store = store
        self.auth_service = auth_service

    @workflow_operation("register_account")
    def register(self, payload: Dict[str, Any]) -> Actor:
        """
        Create an individual or organization account.

        Individuals can act immediately; organizations wait for approval.
        """
        request = parse_registration(payload)
        if self.store.get_actor_by_email(request.email) is not None:
            raise ConflictError("E-mail already registered")

        actor = build_actor(request, self.auth_service.hash_password(request.password))
        stored = self.store.insert_actor(actor)

        logger.info(
            "Account registered",
            extra={"actor_id": stored.id, "role": stored.role, "status": stored.status}
        )
        return stored

    @workflow_operation("authenticate")
    def authenticate(self, email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """
        Verify credentials and issue a bearer token.

        Wrong e-mail and wrong password are indistinguishable to the caller;
        organizations still under review get their own signal.
        """
        email = require_text(email, "email")
        password = require_text(password, "password")

        actor = self.store.get_actor_by_email(email)
        if actor is None or not self.auth_service.verify_password(password, actor.password_hash):
            logger.warning("Login failed: invalid credentials", extra={"email_domain": email.split("@")[-1]})
            raise AuthenticationError("Invalid credentials")

        check_login_allowed(actor)

        token = self.auth_service.generate_token(actor)
        logger.info("Login succeeded", extra={"actor_id": actor.id, "role": actor.role})
        return {**token, "user": actor.public_profile()}

    @workflow_operation("get_profile")
    def get_profile(self, user_context: UserContext) -> Actor:
        actor = self.store.get_actor(user_context.actor_id)
        if actor is None:
            raise NotFoundError("Account not found")
        return actor

    @workflow_operation("update_profile")
    def update_profile(self, user_context: UserContext, payload: Dict[str, Any]) -> Actor:
        """Update name, phone or address; refused for banned accounts."""
        actor = require_not_banned(self.store.get_actor(user_context.actor_id))
        changes = parse_profile_update(payload)

        updated = self.store.compare_and_set_actor(actor.id, {"status": actor.status}, changes)
        if updated is None:
            raise ConflictError("Account changed while updating, reload and retry")

        logger.info(
            "Profile updated",
            extra={"actor_id": actor.id, "fields": sorted(changes.keys())}
        )
        return updated

    @workflow_operation("delete_account")
    def delete_account(self, user_context: UserContext) -> Dict[str, Any]:
        """
        Remove the caller's account.

        Accounts that filed reports are deactivated and kept so those reports
        stay readable; the rest are deleted for good.
        """
        decision = self.store.apply_deletion_policy(
            user_context.actor_id,
            decide_deletion,
            retention_changes(utc_now())
        )
        if decision is None:
            raise NotFoundError("Account not found")

        logger.warning(
            "Account deactivated" if decision.retain else "Account deleted",
            extra={
                "actor_id": user_context.actor_id,
                "retained": decision.retain,
                "report_count": decision.report_count
            }
        )
        return decision.to_dict()

    @workflow_operation("create_administrator")
    def create_administrator(self, email: str, password: str, full_name: str) -> Actor:
        """Administrators are never self-registered; this backs the seeding script."""
        email = require_text(email, "email").lower()
        password = require_text(password, "password")
        if self.store.get_actor_by_email(email) is not None:
            raise ConflictError("E-mail already registered")

        actor = Actor(
            email=email,
            password_hash=self.auth_service.hash_password(password),
            role=ActorRole.ADMINISTRATOR,
            status=AccountStatus.APPROVED,
            full_name=require_text(full_name, "fullName")
        )
        stored = self.store.insert_actor(actor)
        logger.info("Administrator account created", extra={"actor_id": stored.id})
        return stored
