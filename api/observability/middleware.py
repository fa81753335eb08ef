"""
Observability Middleware

Flask middleware that adds OpenTelemetry instrumentation and one structured
log record per request, tagged with the workflow route, the caller's role
and the report or account the request addressed.
"""

import time
import logging
from flask import Flask, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

# Path parameters that identify a workflow resource
RESOURCE_ARGS = {
    "report_id": "report.id",
    "actor_id": "account.id",
}


def resource_attributes() -> dict:
    """Span attributes for the resource addressed by the matched route."""
    view_args = request.view_args or {}
    return {
        attribute: view_args[name]
        for name, attribute in RESOURCE_ARGS.items()
        if name in view_args
    }


def add_observability_middleware(app: Flask, instrument: bool = True):
    """Add OpenTelemetry instrumentation and request logging to Flask app."""

    if instrument:
        FlaskInstrumentor().instrument_app(app)

    logger = logging.getLogger(__name__)

    @app.before_request
    def before_request():
        g.start_time = time.time()
        g.trace_id = None

        span = trace.get_current_span()
        if span.is_recording():
            g.trace_id = format(span.get_span_context().trace_id, "032x")
            span.set_attributes({
                "http.method": request.method,
                "http.route": request.url_rule.rule if request.url_rule else request.path,
                "workflow.endpoint": request.endpoint or "",
                **resource_attributes()
            })

    @app.after_request
    def after_request(response):
        """Log request completion with the caller and the addressed resource."""
        duration_ms = round((time.time() - g.get('start_time', time.time())) * 1000, 2)
        user_context = g.get('user_context')

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attributes({
                "http.status_code": response.status_code,
                "http.duration_ms": duration_ms,
                "enduser.role": user_context.role if user_context else "anonymous"
            })

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "HTTP request completed",
            extra={
                "extra_fields": {
                    "method": request.method,
                    "endpoint": request.endpoint,
                    "path": request.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                    "user_id": user_context.actor_id if user_context else None,
                    "role": user_context.role if user_context else None,
                    "resource": resource_attributes(),
                    "trace_id": g.get('trace_id'),
                    "request_size": request.content_length or 0
                }
            }
        )

        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id

        return response
