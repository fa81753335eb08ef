# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from unittest.mock import Mock

# Set test environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['OTEL_ENABLED'] = 'false'

from models.entities import Actor, UserContext
from models.enums import ActorRole, AccountStatus
from services.amqp import EventPublisher, PublishResult
from services.audit import AuditTrail
from services.auth import AuthService
from services.memory import InMemoryStore
from services.reports import ReportService
from services.accounts import AccountService
from services.governance import GovernanceService

TEST_SECRET = "test-secret-key"
TEST_PASSWORD = "secret123"


@pytest.fixture(scope="session")
def test_mongodb_uri():
    """Test MongoDB connection URI."""
    return os.getenv('MONGODB_TEST_URI', 'mongodb://localhost:27017/?replicaSet=rs0')


@pytest.fixture(scope="session")
def test_database_name():
    """Test database name."""
    return 'report_abandono_test'


@pytest.fixture(scope="session")
def auth_service():
    """Auth service with a cheap bcrypt cost."""
    return AuthService(TEST_SECRET, 3600, 4)


@pytest.fixture(scope="session")
def password_hash(auth_service):
    """Hash of TEST_PASSWORD, computed once."""
    return auth_service.hash_password(TEST_PASSWORD)


@pytest.fixture
def store():
    """Fresh in-memory store."""
    return InMemoryStore()


@pytest.fixture
def publisher():
    """Publisher double that accepts every event."""
    mock = Mock(spec=EventPublisher)
    mock.publish_event.return_value = PublishResult(
        success=True,
        correlation_id="test-correlation",
        exchange="accounts",
        routing_key="organization.approved"
    )
    mock.health_check.return_value = {"status": "healthy", "publisher": "mock"}
    return mock


@pytest.fixture
def report_service(store):
    return ReportService(store, AuditTrail(), max_media_files=3)


@pytest.fixture
def account_service(store, auth_service):
    return AccountService(store, auth_service)


@pytest.fixture
def governance_service(store, publisher):
    return GovernanceService(store, publisher)


@pytest.fixture
def make_actor(store, password_hash):
    """Insert an actor straight into the store."""
    counter = {"value": 0}

    def _make(role=ActorRole.INDIVIDUAL, status=None, **fields):
        counter["value"] += 1
        role = ActorRole(role)
        if status is None:
            status = AccountStatus.APPROVED
        defaults = {
            "email": f"{role.value}{counter['value']}@example.com",
            "full_name": f"Test {role.value.title()} {counter['value']}",
        }
        if role == ActorRole.INDIVIDUAL:
            defaults["cpf"] = f"000.000.000-{counter['value']:02d}"
        elif role == ActorRole.ORGANIZATION:
            defaults["cnpj"] = f"00.000.000/0001-{counter['value']:02d}"
        defaults.update(fields)
        return store.insert_actor(Actor(
            password_hash=password_hash,
            role=role,
            status=status,
            **defaults
        ))

    return _make


@pytest.fixture
def individual(make_actor):
    return make_actor(ActorRole.INDIVIDUAL)


@pytest.fixture
def other_individual(make_actor):
    return make_actor(ActorRole.INDIVIDUAL)


@pytest.fixture
def organization(make_actor):
    return make_actor(ActorRole.ORGANIZATION)


@pytest.fixture
def other_organization(make_actor):
    return make_actor(ActorRole.ORGANIZATION)


@pytest.fixture
def pending_organization(make_actor):
    return make_actor(ActorRole.ORGANIZATION, AccountStatus.PENDING_APPROVAL)


@pytest.fixture
def administrator(make_actor):
    return make_actor(ActorRole.ADMINISTRATOR)


def context_for(actor: Actor) -> UserContext:
    """User context as the authentication layer would build it."""
    return UserContext(actor_id=actor.id, role=actor.role, email=actor.email)


@pytest.fixture
def as_context():
    return context_for


@pytest.fixture
def report_fields():
    """Valid description fields of a submission."""
    return {
        "description": "Dog left tied to a post for two days",
        "category": "dog",
        "location": "Rua das Flores, 123",
        "latitude": -23.5505,
        "longitude": -46.6333
    }


@pytest.fixture
def submitted_report(report_service, individual, report_fields):
    """Report filed by ``individual``."""
    return report_service.submit(context_for(individual), report_fields, []).unwrap()


@pytest.fixture
def app(store, publisher, tmp_path):
    """Flask application backed by the in-memory store."""
    from app import create_app

    application = create_app(
        store=store,
        publisher=publisher,
        TESTING=True,
        ENVIRONMENT='testing',
        OTEL_ENABLED=False,
        JWT_SECRET=TEST_SECRET,
        BCRYPT_ROUNDS=4,
        UPLOAD_FOLDER=str(tmp_path / "uploads"),
        MAX_MEDIA_FILES=3,
        MAX_MEDIA_BYTES=4 * 1024,
        BASE_URL='http://localhost'
    )
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(auth_service):
    """Bearer headers for an actor."""
    def _headers(actor: Actor):
        token = auth_service.generate_token(actor)["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def individual_payload():
    """Registration payload for an individual."""
    def _payload(**overrides):
        payload = {
            "accountType": "individual",
            "email": "ana@example.com",
            "password": TEST_PASSWORD,
            "fullName": "Ana Souza",
            "cpf": "123.456.789-00",
            "phone": "11 98888-7777"
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def organization_payload():
    """Registration payload for an organization."""
    def _payload(**overrides):
        payload = {
            "accountType": "organization",
            "email": "contato@patas.org",
            "password": TEST_PASSWORD,
            "organizationName": "Patas Felizes",
            "cnpj": "12.345.678/0001-90"
        }
        payload.update(overrides)
        return payload

    return _payload
