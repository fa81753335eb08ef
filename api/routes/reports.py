# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Report workflow endpoints.

Submission and listing for creators, claim/conclude/deny for organizations,
contest and deletion for the creator, and the public map feed of concluded
reports.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from models.requests import ReportPath
from middleware.auth import require_auth
from utils.request import RequestParser, UploadStorage, get_uploaded_files

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

reports_tag = Tag(name="Reports", description="Abandonment report workflow")
reports_bp = APIBlueprint(
    'reports',
    __name__,
    url_prefix='/api/reports',
    abp_tags=[reports_tag]
)


def _formatted(report, user_context, status_code=200):
    return jsonify(current_app.hal_formatter.format_report(report, user_context)), status_code


@reports_bp.post('')
@require_auth
def submit_report(user_context):
    """
    Submit a report with optional media files.

    Expects multipart form data with description, category, location,
    latitude, longitude and up to MAX_MEDIA_FILES ``mediaFiles`` parts.
    Role, standing, count and type checks run before any file is written.
    """
    fields = RequestParser.get_report_form()
    files = [f for f in get_uploaded_files() if f and f.filename]
    service = current_app.report_service
    service.authorize_submission(user_context, [f.mimetype for f in files]).unwrap()

    storage = UploadStorage(current_app.config['UPLOAD_FOLDER'], current_app.config['MAX_MEDIA_BYTES'])
    with tracer.start_as_current_span("reports.submit.store_media") as span:
        uploads = storage.save(files)
        span.set_attribute("media.count", len(uploads))

    result = service.submit(user_context, fields, uploads)
    if not result.success:
        storage.discard(uploads)
    return _formatted(result.unwrap(), user_context, 201)


@reports_bp.get('/me')
@require_auth
def list_my_reports(user_context):
    """List the caller's reports, most recent first, with their latest history entry."""
    reports = current_app.report_service.list_own(user_context).unwrap()
    return jsonify(current_app.hal_formatter.format_report_collection(
        reports, user_context, "/api/reports/me"
    )), 200


@reports_bp.get('/organization')
@require_auth
def list_organization_reports(user_context):
    """List reports assigned to the calling organization plus those still unclaimed."""
    reports = current_app.report_service.list_for_organization(user_context).unwrap()
    return jsonify(current_app.hal_formatter.format_report_collection(
        reports, user_context, "/api/reports/organization"
    )), 200


@reports_bp.get('/concluded')
def list_concluded_reports():
    """Public map feed of concluded reports."""
    reports = current_app.report_service.list_concluded().unwrap()
    return jsonify(current_app.hal_formatter.format_map_feed(reports)), 200


@reports_bp.get('/<int:report_id>')
@require_auth
def get_report(user_context, path: ReportPath):
    """Report detail with media and full history, most recent first."""
    report = current_app.report_service.get_detail(user_context, path.report_id).unwrap()
    return _formatted(report, user_context)


@reports_bp.delete('/<int:report_id>')
@require_auth
def delete_report(user_context, path: ReportPath):
    """Delete an own report that nobody has claimed yet."""
    outcome = current_app.report_service.delete(user_context, path.report_id).unwrap()
    return jsonify(outcome), 200


@reports_bp.post('/<int:report_id>/contest')
@require_auth
def contest_report(user_context, path: ReportPath):
    """Contest a concluded report; requires a ``justification``."""
    justification = RequestParser.get_text_field("justification")
    report = current_app.report_service.contest(user_context, path.report_id, justification).unwrap()
    return _formatted(report, user_context)


@reports_bp.put('/<int:report_id>/claim')
@require_auth
def claim_report(user_context, path: ReportPath):
    """Claim an available report for the calling organization."""
    report = current_app.report_service.claim(user_context, path.report_id).unwrap()
    return _formatted(report, user_context)


@reports_bp.put('/<int:report_id>/conclude')
@require_auth
def conclude_report(user_context, path: ReportPath):
    """Conclude an assigned report; requires a ``solution``."""
    solution = RequestParser.get_text_field("solution")
    report = current_app.report_service.conclude(user_context, path.report_id, solution).unwrap()
    return _formatted(report, user_context)


@reports_bp.put('/<int:report_id>/deny')
@require_auth
def deny_report(user_context, path: ReportPath):
    """Deny an assigned report; requires a ``justification``."""
    justification = RequestParser.get_text_field("justification")
    report = current_app.report_service.deny(user_context, path.report_id, justification).unwrap()
    return _formatted(report, user_context)


@reports_bp.post('/<int:report_id>/report-user')
@require_auth
def report_user(user_context, path: ReportPath):
    """Flag the creator of a report for abusive use; requires a ``reason``."""
    reason = RequestParser.get_text_field("reason")
    target = current_app.governance_service.report_user(user_context, path.report_id, reason).unwrap()
    return jsonify({
        "reportedUserId": target.id,
        "status": target.status,
        "banReason": target.ban_reason
    }), 200
