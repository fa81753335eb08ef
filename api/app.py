"""
Report Abandono API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support, wires the
workflow services to their store and event publisher, and registers the
middleware and routes.
"""

import os
from datetime import datetime, timezone
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag
from observability.config import setup_observability
from observability.middleware import add_observability_middleware

from middleware.auth import AuthMiddleware
from middleware.error_handler import ErrorHandlerMiddleware
from services.hal import create_hal_formatter
from services.memory import InMemoryStore
from services.mongodb import MongoDBService
from services.amqp import create_event_publisher
from services.audit import AuditTrail
from services.auth import AuthService
from services.reports import ReportService
from services.accounts import AccountService
from services.governance import GovernanceService

SERVICE_NAME = "report-abandono-api"
SERVICE_VERSION = "1.0.0"

# Room for the text fields and multipart framing around the media parts
FORM_OVERHEAD_BYTES = 64 * 1024

# OpenAPI info
info = Info(
    title="Report Abandono API",
    version=SERVICE_VERSION,
    description="Abandonment report workflow between citizens, organizations and administrators"
)

# API tags for organization
tags = [
    Tag(name="Authentication", description="Account registration and login"),
    Tag(name="Users", description="Own account management"),
    Tag(name="Reports", description="Abandonment report workflow"),
    Tag(name="Administration", description="Governance of accounts and denied reports"),
    Tag(name="Health", description="System health and status")
]


def load_config() -> dict:
    """Read configuration from the environment."""
    return {
        'ENVIRONMENT': os.getenv('ENVIRONMENT', 'development'),
        'STORE_BACKEND': os.getenv('STORE_BACKEND', 'mongodb'),
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/report_abandono'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'report_abandono'),
        'AMQP_URL': os.getenv('AMQP_URL', ''),
        'AMQP_EXCHANGE': os.getenv('AMQP_EXCHANGE', 'accounts'),
        'JWT_SECRET': os.getenv('JWT_SECRET', 'dev-secret-key'),
        'JWT_EXPIRES_SECONDS': int(os.getenv('JWT_EXPIRES_SECONDS', '604800')),
        'BCRYPT_ROUNDS': int(os.getenv('BCRYPT_ROUNDS', '12')),
        'UPLOAD_FOLDER': os.getenv('UPLOAD_FOLDER', 'uploads'),
        'MAX_MEDIA_FILES': int(os.getenv('MAX_MEDIA_FILES', '10')),
        'MAX_MEDIA_BYTES': int(os.getenv('MAX_MEDIA_BYTES', str(10 * 1024 * 1024))),
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000')
    }


def build_store(config: dict):
    """Select the workflow store backend."""
    if config['STORE_BACKEND'] == 'memory':
        return InMemoryStore()
    if config['STORE_BACKEND'] != 'mongodb':
        raise ValueError(f"Unknown STORE_BACKEND: {config['STORE_BACKEND']}")
    return MongoDBService(config['MONGODB_URI'], config['MONGODB_DATABASE'])


def create_app(store=None, publisher=None, **overrides) -> OpenAPI:
    """
    Build the application.

    Args:
        store: Workflow store; built from STORE_BACKEND when omitted
        publisher: Account event publisher; built from AMQP_URL when omitted
        overrides: Configuration values taking precedence over the environment
    """
    config = load_config()
    config.update(overrides)
    config.setdefault(
        'MAX_CONTENT_LENGTH',
        config['MAX_MEDIA_BYTES'] * config['MAX_MEDIA_FILES'] + FORM_OVERHEAD_BYTES
    )

    setup_observability(config['ENVIRONMENT'], config['OTEL_ENABLED'])

    app = OpenAPI(__name__, info=info, tags=tags)
    app.config.update(config)
    app.config['DEBUG'] = config['ENVIRONMENT'] == 'development' and not config.get('TESTING', False)

    add_observability_middleware(app, instrument=config['OTEL_ENABLED'])

    # Initialize services
    store = store if store is not None else build_store(config)
    publisher = publisher if publisher is not None else create_event_publisher(
        config['AMQP_URL'], config['AMQP_EXCHANGE']
    )
    auth_service = AuthService(
        config['JWT_SECRET'],
        config['JWT_EXPIRES_SECONDS'],
        config['BCRYPT_ROUNDS']
    )
    hal_formatter = create_hal_formatter(config['BASE_URL'])

    # Make services available to routes
    app.store = store
    app.publisher = publisher
    app.auth_service = auth_service
    app.auth_middleware = AuthMiddleware(auth_service)
    app.hal_formatter = hal_formatter
    app.report_service = ReportService(store, AuditTrail(), config['MAX_MEDIA_FILES'])
    app.account_service = AccountService(store, auth_service)
    app.governance_service = GovernanceService(store, publisher)

    ErrorHandlerMiddleware(app, hal_formatter)

    # Register routes
    from routes.auth import auth_bp
    from routes.users import users_bp
    from routes.reports import reports_bp
    from routes.admin import admin_bp

    app.register_api(auth_bp)
    app.register_api(users_bp)
    app.register_api(reports_bp)
    app.register_api(admin_bp)

    health_tag = Tag(name="Health", description="System health and status")

    @app.get('/api/healthz', tags=[health_tag])
    def health_check():
        """Store and broker health."""
        store_health = app.store.health_check()
        broker_health = app.publisher.health_check()

        status = "healthy"
        if store_health.get("status") != "healthy":
            status = "unhealthy"
        elif broker_health.get("status") == "unhealthy":
            status = "degraded"

        health_data = {
            "status": status,
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "environment": app.config['ENVIRONMENT'],
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "dependencies": {
                "store": store_health,
                "broker": broker_health
            }
        }
        health_response = hal_formatter.builder.build_resource_response(
            health_data,
            {"self": hal_formatter.builder.link_builder.build_link("/api/healthz")}
        )
        return jsonify(health_response), 503 if status == "unhealthy" else 200

    return app


if __name__ == '__main__':
    # Development server
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
