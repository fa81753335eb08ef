# SPDX-License-Identifier: Apache-2.0

"""
Tests for registration, login, profile management and self-deletion.
"""

import pytest

from models.enums import ActorRole, AccountStatus
from domain.accounts import decide_deletion
from domain.errors import (
    AccountBannedError,
    AuthenticationError,
    ConflictError,
    RegistrationUnderReviewError,
    ValidationError
)


class TestRegistration:

    def test_individual_is_approved(self, account_service, individual_payload):
        actor = account_service.register(individual_payload()).unwrap()
        assert actor.role == ActorRole.INDIVIDUAL
        assert actor.status == AccountStatus.APPROVED
        assert actor.full_name == "Ana Souza"
        assert actor.password_hash != "secret123"

    def test_organization_is_pending(self, account_service, organization_payload):
        actor = account_service.register(organization_payload()).unwrap()
        assert actor.role == ActorRole.ORGANIZATION
        assert actor.status == AccountStatus.PENDING_APPROVAL
        assert actor.full_name == "Patas Felizes"
        assert actor.cpf is None

    def test_duplicate_email(self, account_service, individual_payload):
        account_service.register(individual_payload()).unwrap()
        result = account_service.register(individual_payload(email="ANA@example.com"))
        assert isinstance(result.error, ConflictError)

    def test_invalid_payload_lists_fields(self, account_service):
        result = account_service.register({"accountType": "individual", "email": "bad"})
        assert isinstance(result.error, ValidationError)
        fields = {detail["field"] for detail in result.error.details}
        assert "email" in fields
        assert "password" in fields


class TestAuthenticate:

    def test_login_returns_token_and_profile(self, account_service, individual_payload, auth_service):
        actor = account_service.register(individual_payload()).unwrap()
        session = account_service.authenticate("ana@example.com", "secret123").unwrap()

        assert session["token_type"] == "Bearer"
        assert session["user"]["id"] == actor.id
        payload = auth_service.validate_token(session["access_token"])
        assert payload["sub"] == actor.id
        assert payload["role"] == "individual"

    def test_wrong_password_and_unknown_email_look_alike(self, account_service, individual_payload):
        account_service.register(individual_payload()).unwrap()
        wrong_password = account_service.authenticate("ana@example.com", "nope-nope")
        unknown = account_service.authenticate("ghost@example.com", "secret123")

        assert isinstance(wrong_password.error, AuthenticationError)
        assert wrong_password.error.message == unknown.error.message == "Invalid credentials"

    def test_missing_credentials(self, account_service):
        result = account_service.authenticate("", None)
        assert isinstance(result.error, ValidationError)

    def test_pending_organization_is_under_review(self, account_service, organization_payload):
        account_service.register(organization_payload()).unwrap()
        result = account_service.authenticate("contato@patas.org", "secret123")
        assert isinstance(result.error, RegistrationUnderReviewError)
        assert result.error.status_code == 403

    def test_banned_individual_can_still_log_in(self, account_service, make_actor):
        banned = make_actor(ActorRole.INDIVIDUAL, AccountStatus.BANNED)
        assert account_service.authenticate(banned.email, "secret123").success

    def test_deactivated_account_cannot_log_in(
        self, account_service, individual, as_context, report_service, report_fields
    ):
        report_service.submit(as_context(individual), report_fields, []).unwrap()
        account_service.delete_account(as_context(individual)).unwrap()

        result = account_service.authenticate(individual.email, "secret123")
        assert isinstance(result.error, AuthenticationError)
        assert result.error.message == "Account deactivated"


class TestProfile:

    def test_update_and_clear_fields(self, account_service, individual, as_context):
        ctx = as_context(individual)
        updated = account_service.update_profile(ctx, {"phone": "11 90000-0000", "address": "Rua A"}).unwrap()
        assert updated.phone == "11 90000-0000"
        assert updated.full_name == individual.full_name

        cleared = account_service.update_profile(ctx, {"address": "  "}).unwrap()
        assert cleared.address is None
        assert cleared.phone == "11 90000-0000"

    def test_empty_update(self, account_service, individual, as_context):
        result = account_service.update_profile(as_context(individual), {})
        assert isinstance(result.error, ValidationError)

    def test_banned_cannot_update(self, account_service, make_actor, as_context):
        banned = make_actor(ActorRole.INDIVIDUAL, AccountStatus.BANNED)
        result = account_service.update_profile(as_context(banned), {"phone": "1"})
        assert isinstance(result.error, AccountBannedError)

    def test_get_profile(self, account_service, individual, as_context):
        assert account_service.get_profile(as_context(individual)).unwrap().email == individual.email


class TestDeletionPolicy:

    def test_decision(self):
        assert decide_deletion(0).to_dict() == {
            "deleted": True,
            "reportCount": 0,
            "message": "Account permanently deleted"
        }
        retained = decide_deletion(2)
        assert retained.retain
        assert retained.to_dict()["deleted"] is False
        assert "2 report(s)" in retained.message

    def test_account_without_reports_is_removed(self, account_service, individual, as_context, store):
        outcome = account_service.delete_account(as_context(individual)).unwrap()
        assert outcome["deleted"] is True
        assert store.get_actor(individual.id) is None

    def test_account_with_reports_is_retained(
        self, account_service, report_service, individual, as_context, report_fields, store
    ):
        ctx = as_context(individual)
        report = report_service.submit(ctx, report_fields, []).unwrap()

        outcome = account_service.delete_account(ctx).unwrap()
        assert outcome == {
            "deleted": False,
            "reportCount": 1,
            "message": "Account deactivated; 1 report(s) retained for audit"
        }

        retained = store.get_actor(individual.id)
        assert retained.status == AccountStatus.BANNED
        assert retained.is_deactivated()
        assert store.get_report(report.id) is not None

    def test_deleting_missing_account(self, account_service, individual, as_context):
        ctx = as_context(individual)
        account_service.delete_account(ctx).unwrap()
        assert account_service.delete_account(ctx).error.status_code == 404


class TestCreateAdministrator:

    def test_create(self, account_service):
        admin = account_service.create_administrator("Root@Example.com", "secret123", "Root").unwrap()
        assert admin.role == ActorRole.ADMINISTRATOR
        assert admin.email == "root@example.com"

    def test_duplicate(self, account_service, individual):
        result = account_service.create_administrator(individual.email, "secret123", "Root")
        assert isinstance(result.error, ConflictError)
