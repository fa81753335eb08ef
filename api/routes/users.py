# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Self-service account endpoints: profile read, update and deletion.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
import logging

from middleware.auth import require_auth
from utils.request import RequestParser

logger = logging.getLogger(__name__)

users_tag = Tag(name="Users", description="Own account management")
users_bp = APIBlueprint(
    'users',
    __name__,
    url_prefix='/api/users',
    abp_tags=[users_tag]
)


@users_bp.get('/me')
@require_auth
def get_me(user_context):
    """Return the caller's profile."""
    actor = current_app.account_service.get_profile(user_context).unwrap()
    return jsonify(current_app.hal_formatter.format_profile(actor)), 200


@users_bp.put('/me')
@require_auth
def update_me(user_context):
    """Update full name, phone or address. Blank values clear the field."""
    payload = RequestParser.parse_json_body(required=True)
    actor = current_app.account_service.update_profile(user_context, payload).unwrap()
    return jsonify(current_app.hal_formatter.format_profile(actor)), 200


@users_bp.delete('/me')
@require_auth
def delete_me(user_context):
    """
    Delete the caller's account.

    Accounts with reports are deactivated instead; the response says which.
    """
    outcome = current_app.account_service.delete_account(user_context).unwrap()
    return jsonify(outcome), 200
