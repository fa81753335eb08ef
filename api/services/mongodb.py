# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB implementation of the workflow store with connection pooling.

Reports embed their media and history, so a status change and its audit
entry land in one single-document atomic write. Integer identifiers come
from a ``counters`` collection.
"""

import os
import re
import logging
from datetime import timezone
from typing import Any, Callable, Dict, List, Optional
from pymongo import MongoClient, ReturnDocument, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from opentelemetry import trace

from models.entities import Actor, Report, HistoryEntry
from models.enums import ReportStatus
from domain.accounts import DeletionDecision
from domain.errors import ConflictError
from .store import WorkflowStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

REPORTS = "reports"
ACTORS = "actors"
COUNTERS = "counters"

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def to_camel(name: str) -> str:
    """Convert a snake_case attribute name to the camelCase stored field."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    """Convert a camelCase stored field back to the snake_case attribute."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _convert_keys(value: Any, convert: Callable[[str], str]) -> Any:
    if isinstance(value, dict):
        return {convert(k): _convert_keys(v, convert) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert_keys(v, convert) for v in value]
    return value


def to_document(entity) -> Dict[str, Any]:
    """Serialize an entity into a stored document keyed by ``_id``."""
    data = entity.model_dump()
    data["_id"] = data.pop("id")
    return _convert_keys(data, lambda k: k if k == "_id" else to_camel(k))


def from_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a stored document back into entity field values."""
    data = dict(document)
    data["id"] = data.pop("_id")
    return _convert_keys(data, to_snake)


def to_query(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Map attribute equality filters onto stored field names."""
    return {to_camel(field): value for field, value in fields.items()}


class MongoDBService(WorkflowStore):
    """MongoDB workflow store with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/report_abandono'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'report_abandono')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True,
                    tz_aware=True,
                    tzinfo=timezone.utc
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'backend': 'mongodb',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'backend': 'mongodb',
                'error': str(e),
                'database': self.database_name
            }

    def next_id(self, sequence: str, count: int = 1, session=None) -> int:
        """Atomically advance a named counter and return its new value."""
        counter = self.get_collection(COUNTERS).find_one_and_update(
            {"_id": sequence},
            {"$inc": {"seq": count}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session
        )
        return counter["seq"]

    # Reports

    def insert_report(self, report: Report) -> Report:
        with tracer.start_as_current_span("mongodb.insert_report") as span:
            data = report.model_dump()
            data["id"] = self.next_id(REPORTS)

            if data["media"]:
                last_media_id = self.next_id("media", len(data["media"]))
                first_media_id = last_media_id - len(data["media"]) + 1
                for offset, media in enumerate(data["media"]):
                    media["id"] = first_media_id + offset
                    media["report_id"] = data["id"]
            for entry in data["history"]:
                entry["report_id"] = data["id"]

            stored = Report.model_validate(data)
            self.get_collection(REPORTS).insert_one(to_document(stored))

            span.set_attributes({"report.id": stored.id, "report.media_count": len(stored.media)})
            logger.info(f"Created report {stored.id} with {len(stored.media)} media files")
            return stored

    def get_report(self, report_id: int) -> Optional[Report]:
        document = self.get_collection(REPORTS).find_one({"_id": report_id})
        return Report.model_validate(from_document(document)) if document else None

    def compare_and_set_report(
        self,
        report_id: int,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        entry: HistoryEntry
    ) -> Optional[Report]:
        with tracer.start_as_current_span("mongodb.compare_and_set_report") as span:
            query = {"_id": report_id, "history": {"$size": entry.id - 1}}
            query.update(to_query(expected))
            update = {
                "$set": to_query(changes),
                "$push": {"history": _convert_keys(entry.model_dump(), to_camel)}
            }

            document = self.get_collection(REPORTS).find_one_and_update(
                query,
                update,
                return_document=ReturnDocument.AFTER
            )

            span.set_attributes({"report.id": report_id, "store.matched": document is not None})
            if document is None:
                logger.debug(f"Conditional update on report {report_id} did not match")
                return None
            return Report.model_validate(from_document(document))

    def delete_report(self, report_id: int, expected: Dict[str, Any]) -> bool:
        query = {"_id": report_id}
        query.update(to_query(expected))
        result = self.get_collection(REPORTS).delete_one(query)

        if result.deleted_count > 0:
            logger.warning(f"Deleted report {report_id} with its media and history")
            return True
        return False

    def _find_reports(self, query: Dict[str, Any]) -> List[Report]:
        cursor = self.get_collection(REPORTS).find(query).sort(
            [("createdAt", DESCENDING), ("_id", DESCENDING)]
        )
        return [Report.model_validate(from_document(doc)) for doc in cursor]

    def list_reports(self, **filters: Any) -> List[Report]:
        return self._find_reports(to_query(filters))

    def list_available_for(self, organization_id: int) -> List[Report]:
        return self._find_reports({
            "$or": [
                {"status": ReportStatus.SUBMITTED.value, "assignedOrganizationId": None},
                {"assignedOrganizationId": organization_id}
            ]
        })

    # Actors

    def insert_actor(self, actor: Actor) -> Actor:
        data = actor.model_dump()
        data["id"] = self.next_id(ACTORS)
        stored = Actor.model_validate(data)
        try:
            self.get_collection(ACTORS).insert_one(to_document(stored))
        except DuplicateKeyError as e:
            logger.warning(f"Duplicate actor e-mail rejected: {e}")
            raise ConflictError("E-mail already registered")

        logger.info(f"Created {stored.role} account {stored.id}")
        return stored

    def get_actor(self, actor_id: int) -> Optional[Actor]:
        document = self.get_collection(ACTORS).find_one({"_id": actor_id})
        return Actor.model_validate(from_document(document)) if document else None

    def get_actor_by_email(self, email: str) -> Optional[Actor]:
        document = self.get_collection(ACTORS).find_one({"email": (email or "").strip().lower()})
        return Actor.model_validate(from_document(document)) if document else None

    def compare_and_set_actor(
        self,
        actor_id: int,
        expected: Dict[str, Any],
        changes: Dict[str, Any]
    ) -> Optional[Actor]:
        query = {"_id": actor_id}
        query.update(to_query(expected))
        document = self.get_collection(ACTORS).find_one_and_update(
            query,
            {"$set": to_query(changes)},
            return_document=ReturnDocument.AFTER
        )
        return Actor.model_validate(from_document(document)) if document else None

    def list_actors(self, **filters: Any) -> List[Actor]:
        cursor = self.get_collection(ACTORS).find(to_query(filters)).sort(
            [("createdAt", DESCENDING), ("_id", DESCENDING)]
        )
        return [Actor.model_validate(from_document(doc)) for doc in cursor]

    def apply_deletion_policy(
        self,
        actor_id: int,
        policy: Callable[[int], DeletionDecision],
        retain_changes: Dict[str, Any]
    ) -> Optional[DeletionDecision]:
        actors = self.get_collection(ACTORS)
        reports = self.get_collection(REPORTS)

        def _apply(session) -> Optional[DeletionDecision]:
            if actors.find_one({"_id": actor_id}, session=session) is None:
                return None
            count = reports.count_documents({"creatorId": actor_id}, session=session)
            decision = policy(count)
            if decision.retain:
                actors.update_one({"_id": actor_id}, {"$set": to_query(retain_changes)}, session=session)
            else:
                actors.delete_one({"_id": actor_id}, session=session)
            return decision

        with tracer.start_as_current_span("mongodb.apply_deletion_policy") as span:
            with self.client.start_session() as session:
                decision = session.with_transaction(_apply)
            span.set_attribute("actor.id", actor_id)
            if decision is not None:
                span.set_attribute("actor.retained", decision.retain)
            return decision

    # Index Management

    def create_indexes(self) -> None:
        """Create performance and uniqueness indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            actors = self.get_collection(ACTORS)
            actors.create_index("email", unique=True)
            actors.create_index([("role", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)])

            reports = self.get_collection(REPORTS)
            reports.create_index([("creatorId", ASCENDING), ("createdAt", DESCENDING)])
            reports.create_index([("status", ASCENDING), ("assignedOrganizationId", ASCENDING)])
            reports.create_index([("assignedOrganizationId", ASCENDING), ("createdAt", DESCENDING)])

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise
