# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Administrator endpoints: review queue, organization approval and ban review.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
import logging

from models.requests import ActorPath, ReportPath
from middleware.auth import require_auth
from utils.request import RequestParser

logger = logging.getLogger(__name__)

admin_tag = Tag(name="Administration", description="Governance of accounts and denied reports")
admin_bp = APIBlueprint(
    'admin',
    __name__,
    url_prefix='/api/admin',
    abp_tags=[admin_tag]
)


@admin_bp.get('/requests')
@require_auth
def list_requests(user_context):
    """Pending organizations, reported users and denied reports in one queue."""
    items = current_app.governance_service.list_pending_items(user_context).unwrap()
    return jsonify(current_app.hal_formatter.format_queue(items)), 200


@admin_bp.put('/organizations/<int:actor_id>/approve')
@require_auth
def approve_organization(user_context, path: ActorPath):
    """Approve an organization so it can log in."""
    org = current_app.governance_service.approve_org(user_context, path.actor_id).unwrap()
    return jsonify(current_app.hal_formatter.format_account(org)), 200


@admin_bp.put('/organizations/<int:actor_id>/reject')
@require_auth
def reject_organization(user_context, path: ActorPath):
    """Reject an organization; requires a ``reason``."""
    reason = RequestParser.get_text_field("reason")
    org = current_app.governance_service.reject_org(user_context, path.actor_id, reason).unwrap()
    return jsonify(current_app.hal_formatter.format_account(org)), 200


@admin_bp.put('/users/<int:actor_id>/confirm-ban')
@require_auth
def confirm_ban(user_context, path: ActorPath):
    """Keep a reported user banned."""
    user = current_app.governance_service.confirm_ban(user_context, path.actor_id).unwrap()
    return jsonify(current_app.hal_formatter.format_account(user)), 200


@admin_bp.put('/users/<int:actor_id>/revert-ban')
@require_auth
def revert_ban(user_context, path: ActorPath):
    """Reinstate a reported user."""
    user = current_app.governance_service.revert_ban(user_context, path.actor_id).unwrap()
    return jsonify(current_app.hal_formatter.format_account(user)), 200


@admin_bp.get('/reports/<int:report_id>/denied')
@require_auth
def get_denied_report(user_context, path: ReportPath):
    """Denied report with its denial history."""
    detail = current_app.governance_service.get_denied_report(user_context, path.report_id).unwrap()
    detail["_links"] = {
        "self": current_app.hal_formatter.builder.link_builder.build_link(
            f"/api/admin/reports/{path.report_id}/denied"
        ).model_dump(exclude_none=True)
    }
    return jsonify(detail), 200
