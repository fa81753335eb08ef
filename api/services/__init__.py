# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Workflow services, stores and external integrations.
"""

from .store import WorkflowStore
from .memory import InMemoryStore
from .mongodb import MongoDBService
from .amqp import AMQPService, AMQPConfig, PublishResult, EventPublisher, LoggingEventPublisher, create_event_publisher
from .audit import AuditTrail
from .auth import AuthService
from .reports import ReportService
from .accounts import AccountService
from .governance import GovernanceService

__all__ = [
    "WorkflowStore",
    "InMemoryStore",
    "MongoDBService",
    "AMQPService",
    "AMQPConfig",
    "PublishResult",
    "EventPublisher",
    "LoggingEventPublisher",
    "create_event_publisher",
    "AuditTrail",
    "AuthService",
    "ReportService",
    "AccountService",
    "GovernanceService"
]
