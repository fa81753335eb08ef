# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints for registration and login.
"""

from flask import jsonify, current_app, request
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from utils.request import RequestParser

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
auth_tag = Tag(name="Authentication", description="Account registration and login")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api/auth',
    abp_tags=[auth_tag]
)


@auth_bp.post('/register')
def register():
    """
    Register an individual or organization account.

    Individuals are approved immediately; organizations wait for an
    administrator.
    """
    payload = RequestParser.parse_json_body()
    with tracer.start_as_current_span("auth.register") as span:
        span.set_attribute("auth.account_type", str(payload.get("accountType")))
        actor = current_app.account_service.register(payload).unwrap()

    logger.info(
        "Account registered",
        extra={"user_id": actor.id, "role": actor.role, "ip_address": request.remote_addr}
    )
    return jsonify(current_app.hal_formatter.format_profile(actor)), 201


@auth_bp.post('/login')
def login():
    """
    Authenticate with e-mail and password and return a bearer token.
    """
    payload = RequestParser.parse_json_body()
    with tracer.start_as_current_span("auth.login"):
        session = current_app.account_service.authenticate(
            payload.get("email"),
            payload.get("password")
        ).unwrap()

    formatter = current_app.hal_formatter
    session["_links"] = {
        "self": formatter.builder.link_builder.build_link("/api/auth/login", method="POST").model_dump(exclude_none=True),
        "profile": formatter.builder.link_builder.build_link("/api/users/me").model_dump(exclude_none=True)
    }
    return jsonify(session), 200
