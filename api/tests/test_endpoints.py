# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HTTP tests for the report workflow API.
"""

import io
import os
import pytest
from unittest.mock import patch
from werkzeug.datastructures import FileStorage

from app import FORM_OVERHEAD_BYTES
from models.enums import ActorRole, AccountStatus


def _multipart(fields, *files):
    data = dict(fields)
    if files:
        data["mediaFiles"] = list(files)
    return data


def _png(name="photo.png"):
    return (io.BytesIO(b"\x89PNG\r\n\x1a\n fake image"), name, "image/png")


def _stored(app):
    folder = app.config['UPLOAD_FOLDER']
    return os.listdir(folder) if os.path.isdir(folder) else []


class TestAuthEndpoints:

    def test_register_and_login(self, client, individual_payload):
        response = client.post('/api/auth/register', json=individual_payload())
        assert response.status_code == 201
        profile = response.get_json()
        assert profile["status"] == "approved"
        assert "passwordHash" not in profile and "password_hash" not in profile
        assert profile["_links"]["self"]["href"] == "http://localhost/api/users/me"

        response = client.post('/api/auth/login', json={"email": "ana@example.com", "password": "secret123"})
        assert response.status_code == 200
        session = response.get_json()
        assert session["token_type"] == "Bearer"
        assert session["user"]["email"] == "ana@example.com"

        me = client.get('/api/users/me', headers={"Authorization": f"Bearer {session['access_token']}"})
        assert me.status_code == 200
        assert me.get_json()["fullName"] == "Ana Souza"

    def test_pending_organization_login(self, client, organization_payload):
        assert client.post('/api/auth/register', json=organization_payload()).status_code == 201

        response = client.post('/api/auth/login', json={"email": "contato@patas.org", "password": "secret123"})
        body = response.get_json()

        assert response.status_code == 403
        assert body["type"].endswith("/registration-under-review")

    def test_invalid_registration(self, client):
        response = client.post('/api/auth/register', json={"accountType": "individual"})
        body = response.get_json()

        assert response.status_code == 400
        assert body["title"] == "Validation Error"
        assert body["errors"]
        assert "schema" in body["_links"]

    def test_bad_credentials(self, client, individual):
        response = client.post('/api/auth/login', json={"email": individual.email, "password": "wrong-one"})
        assert response.status_code == 401
        assert response.get_json()["detail"] == "Invalid credentials"


class TestUserEndpoints:

    def test_requires_token(self, client):
        response = client.get('/api/users/me')
        assert response.status_code == 401
        assert response.get_json()["type"].endswith("/authentication-required")

    def test_update_profile(self, client, individual, auth_headers):
        response = client.put('/api/users/me', json={"phone": "11 3333-4444"}, headers=auth_headers(individual))
        assert response.status_code == 200
        assert response.get_json()["phone"] == "11 3333-4444"

    def test_update_requires_body(self, client, individual, auth_headers):
        response = client.put('/api/users/me', headers=auth_headers(individual))
        assert response.status_code == 400

    def test_delete_account(self, client, individual, auth_headers, store):
        response = client.delete('/api/users/me', headers=auth_headers(individual))
        assert response.status_code == 200
        assert response.get_json()["deleted"] is True
        assert store.get_actor(individual.id) is None


class TestReportEndpoints:

    @pytest.fixture
    def report_form(self, report_fields):
        return {key: str(value) for key, value in report_fields.items()}

    def _submit(self, client, headers, form, *files):
        return client.post(
            '/api/reports',
            data=_multipart(form, *files),
            headers=headers,
            content_type='multipart/form-data'
        )

    def test_submit_with_media(self, client, app, individual, auth_headers, report_form):
        response = self._submit(client, auth_headers(individual), report_form, _png(), _png("second.png"))
        body = response.get_json()

        assert response.status_code == 201
        assert body["status"] == "submitted"
        assert body["code"] == f"PROT-{body['id']:06d}"
        assert [m["kind"] for m in body["media"]] == ["image", "image"]
        assert body["history"][0]["newStatus"] == "submitted"
        assert "delete" in body["_links"]

        stored = os.listdir(app.config['UPLOAD_FOLDER'])
        assert sorted(m["fileRef"] for m in body["media"]) == sorted(stored)

    def test_rejected_media_is_discarded(self, client, app, individual, auth_headers, report_form):
        text_file = (io.BytesIO(b"not media"), "notes.txt", "text/plain")
        response = self._submit(client, auth_headers(individual), report_form, text_file)

        assert response.status_code == 400
        assert _stored(app) == []

    def test_too_many_files(self, client, app, individual, auth_headers, report_form):
        files = [_png(f"p{i}.png") for i in range(4)]
        response = self._submit(client, auth_headers(individual), report_form, *files)
        assert response.status_code == 400
        assert _stored(app) == []

    def test_banned_user_uploads_nothing(self, client, app, make_actor, auth_headers, report_form):
        banned = make_actor(ActorRole.INDIVIDUAL, AccountStatus.BANNED)
        files = [_png(f"p{i}.png") for i in range(3)]
        response = self._submit(client, auth_headers(banned), report_form, *files)

        assert response.status_code == 403
        assert response.get_json()["type"].endswith("/account-banned")
        assert _stored(app) == []

    def test_administrator_uploads_nothing(self, client, app, administrator, auth_headers, report_form):
        response = self._submit(client, auth_headers(administrator), report_form, _png())
        assert response.status_code == 403
        assert _stored(app) == []

    def test_oversized_media_is_refused(self, client, app, individual, auth_headers, report_form):
        video = (io.BytesIO(b"\x00" * (8 * 1024)), "clip.mp4", "video/mp4")
        response = self._submit(client, auth_headers(individual), report_form, _png(), video)
        body = response.get_json()

        assert response.status_code == 413
        assert body["type"].endswith("/payload-too-large")
        assert "clip.mp4" in body["detail"]
        assert _stored(app) == []

    def test_request_body_limit(self, client, app, individual, auth_headers, report_form):
        assert app.config['MAX_CONTENT_LENGTH'] == 3 * 4 * 1024 + FORM_OVERHEAD_BYTES
        video = (io.BytesIO(b"\x00" * (app.config['MAX_CONTENT_LENGTH'] + 1)), "long.mp4", "video/mp4")
        response = self._submit(client, auth_headers(individual), report_form, video)

        assert response.status_code == 413
        assert _stored(app) == []

    def test_failed_write_leaves_no_files(self, client, app, individual, auth_headers, report_form, store):
        real_save = FileStorage.save
        calls = []

        def save_then_fail(self, dst, *args, **kwargs):
            calls.append(dst)
            if len(calls) == 2:
                raise OSError("disk full")
            return real_save(self, dst, *args, **kwargs)

        with patch.object(FileStorage, "save", autospec=True, side_effect=save_then_fail):
            response = self._submit(
                client, auth_headers(individual), report_form, _png("a.png"), _png("b.png")
            )

        assert response.status_code == 500
        assert _stored(app) == []
        assert store.list_reports() == []

    def test_missing_fields(self, client, individual, auth_headers):
        response = self._submit(client, auth_headers(individual), {"description": "only this"})
        body = response.get_json()

        assert response.status_code == 400
        assert {error["field"] for error in body["errors"]} >= {"category", "location"}

    def test_full_lifecycle(
        self, client, individual, organization, other_organization, auth_headers, report_form
    ):
        creator = auth_headers(individual)
        org = auth_headers(organization)

        report_id = self._submit(client, creator, report_form).get_json()["id"]

        listing = client.get('/api/reports/organization', headers=org).get_json()
        assert report_id in [r["id"] for r in listing["_embedded"]["reports"]]

        claimed = client.put(f'/api/reports/{report_id}/claim', headers=org)
        assert claimed.status_code == 200
        assert claimed.get_json()["status"] == "in_review"

        second_claim = client.put(f'/api/reports/{report_id}/claim', headers=auth_headers(other_organization))
        assert second_claim.status_code == 409

        missing_solution = client.put(f'/api/reports/{report_id}/conclude', json={}, headers=org)
        assert missing_solution.status_code == 400

        concluded = client.put(
            f'/api/reports/{report_id}/conclude', json={"solution": "Dog rescued and sheltered"}, headers=org
        )
        assert concluded.status_code == 200
        assert concluded.get_json()["history"][0]["observation"] == "Dog rescued and sheltered"

        feed = client.get('/api/reports/concluded').get_json()
        assert [point["id"] for point in feed["_embedded"]["reports"]] == [report_id]

        contested = client.post(
            f'/api/reports/{report_id}/contest', json={"justification": "The dog is still there"}, headers=creator
        )
        body = contested.get_json()
        assert contested.status_code == 200
        assert body["status"] == "denied"
        assert [entry["newStatus"] for entry in body["history"]] == ["denied", "concluded", "in_review", "submitted"]

        own = client.get('/api/reports/me', headers=creator).get_json()
        assert own["_embedded"]["reports"][0]["latestHistory"]["newStatus"] == "denied"

    def test_detail_is_hidden_from_unrelated_individual(
        self, client, submitted_report, other_individual, auth_headers
    ):
        response = client.get(f'/api/reports/{submitted_report.id}', headers=auth_headers(other_individual))
        assert response.status_code == 404

    def test_individual_cannot_claim(self, client, submitted_report, other_individual, auth_headers):
        response = client.put(f'/api/reports/{submitted_report.id}/claim', headers=auth_headers(other_individual))
        assert response.status_code == 403

    def test_delete_submitted_report(self, client, submitted_report, individual, auth_headers):
        response = client.delete(f'/api/reports/{submitted_report.id}', headers=auth_headers(individual))
        assert response.status_code == 200
        assert response.get_json() == {"id": submitted_report.id, "deleted": True}

        again = client.get(f'/api/reports/{submitted_report.id}', headers=auth_headers(individual))
        assert again.status_code == 404

    def test_report_user(self, client, submitted_report, individual, organization, auth_headers):
        response = client.post(
            f'/api/reports/{submitted_report.id}/report-user',
            json={"reason": "Repeated fake reports"},
            headers=auth_headers(organization)
        )
        assert response.status_code == 200
        assert response.get_json() == {
            "reportedUserId": individual.id,
            "status": "banned",
            "banReason": "Repeated fake reports"
        }

    def test_non_string_justification(self, client, submitted_report, individual, auth_headers):
        response = client.post(
            f'/api/reports/{submitted_report.id}/contest', json={"justification": 42}, headers=auth_headers(individual)
        )
        assert response.status_code == 400


class TestAdminEndpoints:

    def test_approve_organization(self, client, administrator, pending_organization, auth_headers, publisher):
        response = client.put(
            f'/api/admin/organizations/{pending_organization.id}/approve', headers=auth_headers(administrator)
        )
        body = response.get_json()

        assert response.status_code == 200
        assert body["status"] == "approved"
        assert "approve" in body["_links"]
        publisher.publish_event.assert_called_once()

    def test_reject_requires_reason(self, client, administrator, pending_organization, auth_headers):
        response = client.put(
            f'/api/admin/organizations/{pending_organization.id}/reject',
            json={},
            headers=auth_headers(administrator)
        )
        assert response.status_code == 400

    def test_admin_only(self, client, organization, auth_headers):
        response = client.get('/api/admin/requests', headers=auth_headers(organization))
        assert response.status_code == 403
        assert response.get_json()["type"].endswith("/insufficient-permissions")

    def test_queue_and_ban_review(
        self, client, administrator, organization, submitted_report, individual, auth_headers
    ):
        client.post(
            f'/api/reports/{submitted_report.id}/report-user',
            json={"reason": "Abuse"},
            headers=auth_headers(organization)
        )
        admin = auth_headers(administrator)

        queue = client.get('/api/admin/requests', headers=admin).get_json()
        assert [item["type"] for item in queue["_embedded"]["requests"]] == ["reported_user"]

        reverted = client.put(f'/api/admin/users/{individual.id}/revert-ban', headers=admin)
        assert reverted.status_code == 200
        assert reverted.get_json()["status"] == "approved"

        queue = client.get('/api/admin/requests', headers=admin).get_json()
        assert queue["total"] == 0

    def test_denied_report_detail(self, client, administrator, organization, submitted_report, auth_headers):
        org = auth_headers(organization)
        client.put(f'/api/reports/{submitted_report.id}/claim', headers=org)
        client.put(f'/api/reports/{submitted_report.id}/deny', json={"justification": "Duplicate"}, headers=org)

        response = client.get(
            f'/api/admin/reports/{submitted_report.id}/denied', headers=auth_headers(administrator)
        )
        assert response.status_code == 200
        assert response.get_json()["_links"]["self"]["href"].endswith(
            f"/api/admin/reports/{submitted_report.id}/denied"
        )


class TestHealthEndpoint:

    def test_healthy(self, client):
        response = client.get('/api/healthz')
        body = response.get_json()

        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["dependencies"]["store"]["backend"] == "memory"
        assert body["_links"]["self"]["href"] == "http://localhost/api/healthz"

    def test_degraded_when_broker_is_down(self, client, publisher):
        publisher.health_check.return_value = {"status": "unhealthy", "error": "refused"}
        response = client.get('/api/healthz')
        assert response.status_code == 200
        assert response.get_json()["status"] == "degraded"

    def test_unhealthy_store(self, client, store):
        with patch.object(store, 'health_check', return_value={"status": "unhealthy", "backend": "memory"}):
            response = client.get('/api/healthz')
        assert response.status_code == 503
        assert response.get_json()["status"] == "unhealthy"
