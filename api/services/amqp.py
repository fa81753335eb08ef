# SPDX-License-Identifier: Apache-2.0

"""
AMQP publisher for account events.

Organization approval and rejection are announced on a topic exchange once
the status change has been committed; a separate consumer turns them into
e-mail. Connections are opened per publish, which suits serverless
deployments where no process lives between requests.
"""

import json
import logging
import os
import time
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Any, Optional, Generator
from urllib.parse import urlparse

import pika
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from opentelemetry.propagate import inject


logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ORGANIZATION_APPROVED = "organization.approved"
ORGANIZATION_REJECTED = "organization.rejected"


@dataclass
class AMQPConfig:
    """AMQP configuration settings."""
    url: str
    exchange: str = "accounts"
    connection_timeout: int = 30
    heartbeat: int = 600
    blocked_connection_timeout: int = 300
    retry_delay: float = 1.0
    max_retries: int = 3


@dataclass
class PublishResult:
    """Result of message publishing operation."""
    success: bool
    correlation_id: str
    exchange: str
    routing_key: str
    error: Optional[str] = None
    retry_count: int = 0


class AMQPConnectionError(Exception):
    """Raised when AMQP connection fails."""
    pass


class EventPublisher(ABC):
    """Interface for fire-and-forget account event delivery."""

    @abstractmethod
    def publish_event(self, event_type: str, payload: Dict[str, Any]) -> PublishResult:
        """Deliver an event; failures are reported in the result, never raised."""

    @abstractmethod
    def health_check(self) -> Dict[str, Any]:
        """Report whether the broker can be reached."""


def build_event(event_type: str, payload: Dict[str, Any], correlation_id: str) -> Dict[str, Any]:
    """Wrap an event payload in the message envelope."""
    return {
        "event": event_type,
        "correlation_id": correlation_id,
        "occurred_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "data": payload
    }


def serialize_message(message: Dict[str, Any]) -> str:
    """
    Serialize message to JSON with proper datetime handling.

    Args:
        message: Message to serialize

    Returns:
        str: JSON serialized message
    """
    def json_serializer(obj):
        if hasattr(obj, 'isoformat'):
            return obj.isoformat()
        return str(obj)

    return json.dumps(message, default=json_serializer, ensure_ascii=False, separators=(',', ':'))


class LoggingEventPublisher(EventPublisher):
    """Publisher used when no broker is configured: events are only logged."""

    def __init__(self, exchange: str = "accounts"):
        self.exchange = exchange

    def publish_event(self, event_type: str, payload: Dict[str, Any]) -> PublishResult:
        correlation_id = str(uuid.uuid4())
        logger.info(
            "Account event (no broker configured)",
            extra={
                "extra_fields": {
                    "event": event_type,
                    "correlation_id": correlation_id,
                    "body": serialize_message(build_event(event_type, payload, correlation_id))
                }
            }
        )
        return PublishResult(
            success=True,
            correlation_id=correlation_id,
            exchange=self.exchange,
            routing_key=event_type
        )

    def health_check(self) -> Dict[str, Any]:
        return {"status": "disabled", "publisher": "logging"}


class AMQPService(EventPublisher):
    """
    AMQP publisher with serverless-friendly connection handling.

    This service provides:
    - One short-lived connection per publish
    - Topic exchange declaration
    - Publishing with exponential backoff retry
    - OpenTelemetry trace context propagation in message headers
    """

    def __init__(self, config: AMQPConfig):
        self.config = config
        self._connection_params = self._parse_connection_url(config.url)

    def _parse_connection_url(self, url: str) -> pika.ConnectionParameters:
        """Parse AMQP URL and create connection parameters."""
        parsed = urlparse(url)

        return pika.ConnectionParameters(
            host=parsed.hostname or 'localhost',
            port=parsed.port or 5672,
            virtual_host=parsed.path.lstrip('/') or '/',
            credentials=pika.PlainCredentials(
                username=parsed.username or 'guest',
                password=parsed.password or 'guest'
            ),
            connection_attempts=self.config.max_retries,
            retry_delay=self.config.retry_delay,
            socket_timeout=self.config.connection_timeout,
            heartbeat=self.config.heartbeat,
            blocked_connection_timeout=self.config.blocked_connection_timeout
        )

    @contextmanager
    def _get_connection(self) -> Generator[pika.channel.Channel, None, None]:
        """
        Context manager for AMQP connections with automatic cleanup.

        Creates a fresh connection for each operation and always closes it.
        """
        connection = None
        channel = None

        try:
            with tracer.start_as_current_span("amqp.connection.create") as span:
                connection = pika.BlockingConnection(self._connection_params)
                channel = connection.channel()

                span.set_attributes({
                    "amqp.host": self._connection_params.host,
                    "amqp.port": self._connection_params.port,
                    "amqp.virtual_host": self._connection_params.virtual_host
                })

            yield channel

        except pika.exceptions.AMQPConnectionError as e:
            logger.error(
                "AMQP connection failed",
                extra={
                    "extra_fields": {
                        "error": str(e),
                        "host": self._connection_params.host,
                        "port": self._connection_params.port
                    }
                },
                exc_info=True
            )
            raise AMQPConnectionError(f"Failed to connect to AMQP broker: {e}")

        finally:
            if channel and not channel.is_closed:
                try:
                    channel.close()
                except Exception as e:
                    logger.warning(f"Error closing AMQP channel: {e}")

            if connection and not connection.is_closed:
                try:
                    connection.close()
                except Exception as e:
                    logger.warning(f"Error closing AMQP connection: {e}")

    def publish_event(self, event_type: str, payload: Dict[str, Any]) -> PublishResult:
        """
        Publish an account event to the topic exchange.

        Args:
            event_type: Routing key, e.g. ``organization.approved``
            payload: Event data

        Returns:
            PublishResult; failures are reported, not raised
        """
        correlation_id = str(uuid.uuid4())

        with tracer.start_as_current_span("amqp.publish_event") as span:
            span.set_attributes({
                "amqp.exchange": self.config.exchange,
                "amqp.routing_key": event_type,
                "messaging.message_id": correlation_id
            })

            message = build_event(event_type, payload, correlation_id)
            headers: Dict[str, Any] = {}
            inject(headers)

            result = self._publish_with_retry(event_type, serialize_message(message), headers, correlation_id)
            if not result.success:
                span.set_status(Status(StatusCode.ERROR, result.error or "publish failed"))
            return result

    def _publish_with_retry(
        self,
        routing_key: str,
        body: str,
        headers: Dict[str, Any],
        correlation_id: str
    ) -> PublishResult:
        """Publish message with exponential backoff retry logic."""
        exchange = self.config.exchange
        last_error = None

        for attempt in range(self.config.max_retries + 1):
            try:
                with self._get_connection() as channel:
                    channel.exchange_declare(exchange=exchange, exchange_type='topic', durable=True)

                    properties = pika.BasicProperties(
                        correlation_id=correlation_id,
                        timestamp=int(time.time()),
                        delivery_mode=2,  # Persistent message
                        content_type='application/json',
                        headers=headers
                    )

                    channel.basic_publish(
                        exchange=exchange,
                        routing_key=routing_key,
                        body=body,
                        properties=properties
                    )

                    logger.info(
                        "Message published successfully",
                        extra={
                            "extra_fields": {
                                "exchange": exchange,
                                "routing_key": routing_key,
                                "correlation_id": correlation_id,
                                "attempt": attempt + 1
                            }
                        }
                    )

                    return PublishResult(
                        success=True,
                        correlation_id=correlation_id,
                        exchange=exchange,
                        routing_key=routing_key,
                        retry_count=attempt
                    )

            except Exception as e:
                last_error = e

                if attempt < self.config.max_retries:
                    delay = self.config.retry_delay * (2 ** attempt)

                    logger.warning(
                        "Message publish failed, retrying",
                        extra={
                            "extra_fields": {
                                "exchange": exchange,
                                "routing_key": routing_key,
                                "correlation_id": correlation_id,
                                "attempt": attempt + 1,
                                "retry_delay": delay,
                                "error": str(e)
                            }
                        }
                    )

                    time.sleep(delay)
                else:
                    logger.error(
                        "Message publish failed after all retries",
                        extra={
                            "extra_fields": {
                                "exchange": exchange,
                                "routing_key": routing_key,
                                "correlation_id": correlation_id,
                                "total_attempts": attempt + 1,
                                "error": str(e)
                            }
                        },
                        exc_info=True
                    )

        return PublishResult(
            success=False,
            correlation_id=correlation_id,
            exchange=exchange,
            routing_key=routing_key,
            error=str(last_error),
            retry_count=self.config.max_retries
        )

    def health_check(self) -> Dict[str, Any]:
        """
        Perform health check by attempting to connect to AMQP broker.
        """
        try:
            with self._get_connection() as channel:
                channel.exchange_declare(exchange=self.config.exchange, exchange_type='topic', passive=True)
                return {"status": "healthy", "publisher": "amqp", "exchange": self.config.exchange}
        except Exception as e:
            logger.warning(
                "AMQP health check failed",
                extra={
                    "extra_fields": {
                        "error": str(e),
                        "host": self._connection_params.host
                    }
                }
            )
            return {"status": "unhealthy", "publisher": "amqp", "error": str(e)}


def create_event_publisher(amqp_url: Optional[str] = None, exchange: Optional[str] = None) -> EventPublisher:
    """
    Factory function for the account event publisher.

    An empty broker URL selects the logging publisher.

    Returns:
        EventPublisher: Configured publisher instance
    """
    amqp_url = amqp_url if amqp_url is not None else os.getenv('AMQP_URL', '')
    exchange = exchange or os.getenv('AMQP_EXCHANGE', 'accounts')

    if not amqp_url:
        logger.info("AMQP_URL not set, account events will only be logged")
        return LoggingEventPublisher(exchange)

    config = AMQPConfig(
        url=amqp_url,
        exchange=exchange,
        connection_timeout=int(os.getenv('AMQP_CONNECTION_TIMEOUT', '30')),
        heartbeat=int(os.getenv('AMQP_HEARTBEAT', '600')),
        blocked_connection_timeout=int(os.getenv('AMQP_BLOCKED_TIMEOUT', '300')),
        retry_delay=float(os.getenv('AMQP_RETRY_DELAY', '1.0')),
        max_retries=int(os.getenv('AMQP_MAX_RETRIES', '3'))
    )

    return AMQPService(config)
