"""
OpenTelemetry Configuration

Sets up distributed tracing and logging for the Report Abandono API.
Sampling, exporters and log levels depend on the deployment environment.
"""

import os
import logging
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SERVICE_NAME = 'report-abandono-api'

_configured = False


def setup_observability(environment: str = None, otel_enabled: bool = None):
    """Initialize OpenTelemetry and logging based on environment configuration."""
    global _configured

    environment = environment or os.getenv('ENVIRONMENT', 'development')
    if otel_enabled is None:
        otel_enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'

    setup_structured_logging(environment)

    if not otel_enabled or _configured:
        # Spans stay no-ops without a tracer provider
        return

    # Environment-specific sampling
    if environment == 'production':
        sampler = TraceIdRatioBased(0.1)
    elif environment == 'staging':
        sampler = TraceIdRatioBased(0.5)
    else:
        sampler = TraceIdRatioBased(1.0)

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": os.getenv('SERVICE_VERSION', '1.0.0'),
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(sampler=sampler, resource=resource)

    otlp_endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    if otlp_endpoint:
        headers = None
        if os.getenv('OTEL_API_KEY'):
            headers = (("authorization", f"Bearer {os.getenv('OTEL_API_KEY')}"),)
        tracer_provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=otlp_endpoint, headers=headers),
                max_export_batch_size=512
            )
        )
    elif environment == 'development':
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    _configured = True


def setup_structured_logging(environment: str):
    """Configure logging levels per environment."""
    log_level = {
        'production': logging.WARNING,
        'staging': logging.INFO,
        'development': logging.INFO,
        'testing': logging.WARNING
    }.get(environment, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        handlers=[logging.StreamHandler()]
    )

    if environment == 'production':
        logging.getLogger('pymongo').setLevel(logging.WARNING)
        logging.getLogger('pika').setLevel(logging.ERROR)

    elif environment == 'development':
        logging.getLogger('domain').setLevel(logging.DEBUG)
        logging.getLogger('services').setLevel(logging.DEBUG)
        logging.getLogger('pika').setLevel(logging.WARNING)
