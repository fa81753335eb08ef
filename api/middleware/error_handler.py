# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, Tuple
from opentelemetry import trace
import logging

from domain.errors import DomainError
from services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "An unexpected error occurred"


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(DomainError)
        def handle_domain_error(error):
            return self.handle_domain_error(error)

        @self.app.errorhandler(400)
        def handle_bad_request(error):
            return self.handle_client_error(error, "bad-request", "Bad Request")

        @self.app.errorhandler(404)
        def handle_not_found(error):
            return self.handle_client_error(error, "not-found", "Not Found")

        @self.app.errorhandler(405)
        def handle_method_not_allowed(error):
            return self.handle_client_error(error, "method-not-allowed", "Method Not Allowed")

        @self.app.errorhandler(413)
        def handle_payload_too_large(error):
            return self.handle_client_error(error, "payload-too-large", "Payload Too Large")

        @self.app.errorhandler(422)
        def handle_unprocessable_entity(error):
            return self.handle_client_error(error, "validation-error", "Validation Error")

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            if isinstance(error, HTTPException):
                return self.handle_client_error(error, "http-error", error.name)
            return self.handle_unexpected_error(error)

    def handle_domain_error(self, error: DomainError) -> Tuple[Dict[str, Any], int]:
        """
        Render a workflow error as a problem document.

        Internal errors already carry a generic message, so nothing about the
        underlying failure reaches the client.
        """
        with tracer.start_as_current_span("error_handler.domain_error") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            log = logger.error if error.status_code >= 500 else logger.warning
            log(
                f"Request failed: {error.title}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "detail": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            return jsonify(self.hal_formatter.format_error(error, request.path)), error.status_code

    def handle_client_error(
        self,
        error: HTTPException,
        error_type: str,
        title: str
    ) -> Tuple[Dict[str, Any], int]:
        """
        Handle client errors raised by Flask or werkzeug.

        Args:
            error: HTTP exception
            error_type: Error type identifier
            title: Error title

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.client_error") as span:
            status = error.code or 400
            span.set_attributes({
                "error.type": error_type,
                "error.status": status,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else title

            logger.warning(
                f"Client error: {title}",
                extra={
                    "error_type": error_type,
                    "status_code": status,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method,
                    "user_agent": request.headers.get('User-Agent'),
                    "ip_address": request.remote_addr
                }
            )

            error_response = self.hal_formatter.builder.build_error_response(
                error_type,
                title,
                status,
                detail,
                request.path
            )
            return jsonify(error_response), status

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "internal-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "internal-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            error_response = self.hal_formatter.builder.build_error_response(
                "internal-error",
                "Internal Server Error",
                500,
                GENERIC_SERVER_ERROR,
                request.path
            )
            return jsonify(error_response), 500
