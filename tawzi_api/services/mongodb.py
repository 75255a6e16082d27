# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB record store with camp-scoped operations and connection pooling.

Child collections (beneficiaries, distribution, parcels, complaints) carry a
``campId`` field; camps are keyed by ``_id``. Document keys written by the
administration backend may be ObjectIds or plain strings.
"""

import os
import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError
from bson import ObjectId
from opentelemetry import trace

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

CAMPS = "camps"
BENEFICIARIES = "beneficiaries"
DISTRIBUTIONS = "distribution"
PARCELS = "parcels"
COMPLAINTS = "complaints"

SCOPE_FIELD = "campId"
KEY_FIELD = "_key"


class RecordStoreError(Exception):
    """Raised when a record store operation fails (connectivity, timeout, server error)."""

    def __init__(
        self,
        operation: str,
        collection: str,
        camp_id: Optional[str] = None,
        candidate: Any = None,
        cause: Optional[Exception] = None
    ):
        self.operation = operation
        self.collection = collection
        self.camp_id = camp_id
        self.candidate = candidate
        self.cause = cause
        super().__init__(
            f"Record store {operation} failed on {collection} "
            f"(camp={camp_id}, candidate={candidate!r}): {cause}"
        )

    @property
    def scope(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "collection": self.collection,
            "camp_id": self.camp_id,
            "candidate": self.candidate
        }


def key_candidates(key: Union[int, str]) -> List[Any]:
    """Store representations a document key may have been written with."""
    text = str(key)
    candidates: List[Any] = [text]
    if ObjectId.is_valid(text):
        candidates.insert(0, ObjectId(text))
    return candidates


def _single_value(filters: Optional[Dict[str, Any]]) -> Any:
    if filters and len(filters) == 1:
        return next(iter(filters.values()))
    return filters


class MongoDBService:
    """MongoDB record store with camp-scoped operations and connection pooling."""

    def __init__(
        self,
        connection_string: str = None,
        database_name: str = None,
        timeout_ms: Optional[int] = None
    ):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/tawzi3_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'tawzi3_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))
        # Upper bound for any single store operation; expiry surfaces as RecordStoreError
        self.timeout_ms = timeout_ms or int(os.getenv('MONGODB_TIMEOUT_MS', '10000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            self._client = MongoClient(
                self.connection_string,
                maxPoolSize=self.max_pool_size,
                minPoolSize=self.min_pool_size,
                maxIdleTimeMS=self.max_idle_time_ms,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                timeoutMS=self.timeout_ms,
                retryWrites=True,
                retryReads=True
            )
            logger.info("MongoDB client created")

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
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except PyMongoError as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    @staticmethod
    def _to_record(document: Dict[str, Any]) -> Dict[str, Any]:
        """Expose the store key as a string under ``_key``, keeping any embedded ``id``."""
        record = dict(document)
        record[KEY_FIELD] = str(record.pop("_id"))
        return record

    def _build_camp_query(self, camp_id: str, filters: Dict = None) -> Dict:
        """Build camp-scoped query with optional equality filters."""
        query = {SCOPE_FIELD: camp_id}
        if filters:
            query.update(filters)
        return query

    # Camp-scoped operations

    def find_by_camp(self, collection: str, camp_id: str, filters: Dict = None,
                     sort_by: Optional[str] = None, sort_order: int = DESCENDING) -> List[Dict]:
        """Find documents in a camp matching equality filters."""
        with tracer.start_as_current_span("db.find_by_camp") as span:
            span.set_attributes({
                "db.collection": collection,
                "db.operation": "find",
                "camp.id": camp_id
            })
            try:
                cursor = self.get_collection(collection).find(self._build_camp_query(camp_id, filters))
                if sort_by:
                    cursor = cursor.sort(sort_by, sort_order)
                documents = [self._to_record(doc) for doc in cursor]
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(
                    f"Failed to find documents in {collection}",
                    extra={"camp_id": camp_id, "collection": collection, "error": str(e)}
                )
                raise RecordStoreError("find", collection, camp_id, _single_value(filters), e) from e

            span.set_attribute("db.result_count", len(documents))
            logger.debug(f"Found {len(documents)} documents in {collection} for camp {camp_id}")
            return documents

    def find_one_by_key(self, collection: str, camp_id: str,
                        key: Union[int, str]) -> Optional[Dict]:
        """Find a single camp document by its store key."""
        with tracer.start_as_current_span("db.find_one_by_key") as span:
            span.set_attributes({
                "db.collection": collection,
                "db.operation": "get_by_key",
                "camp.id": camp_id
            })
            query = self._build_camp_query(camp_id, {"_id": {"$in": key_candidates(key)}})
            try:
                document = self.get_collection(collection).find_one(query)
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(
                    f"Failed to get document {key} from {collection}",
                    extra={"camp_id": camp_id, "collection": collection, "error": str(e)}
                )
                raise RecordStoreError("get_by_key", collection, camp_id, key, e) from e

            span.set_attribute("db.found", document is not None)
            if document is None:
                logger.debug(f"Document {key} not found in {collection} for camp {camp_id}")
                return None
            return self._to_record(document)

    def create(self, collection: str, camp_id: str, document: Dict,
               server_timestamp_fields: Iterable[str] = ()) -> str:
        """Create a camp document; listed fields are stamped by the server clock."""
        with tracer.start_as_current_span("db.create") as span:
            span.set_attributes({
                "db.collection": collection,
                "db.operation": "create",
                "camp.id": camp_id
            })
            new_id = ObjectId()
            fields = dict(document)
            fields[SCOPE_FIELD] = camp_id
            update: Dict[str, Any] = {"$setOnInsert": fields}
            stamped = list(server_timestamp_fields)
            if stamped:
                update["$currentDate"] = {field: {"$type": "date"} for field in stamped}

            try:
                # Upsert on a fresh key is an insert that can use server-side operators
                self.get_collection(collection).update_one({"_id": new_id}, update, upsert=True)
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(
                    f"Failed to create document in {collection}",
                    extra={"camp_id": camp_id, "collection": collection, "error": str(e)}
                )
                raise RecordStoreError("create", collection, camp_id, None, e) from e

            logger.info(f"Created document in {collection}: {new_id}")
            return str(new_id)

    def update_by_key(self, collection: str, camp_id: str, key: Union[int, str],
                      updates: Dict) -> bool:
        """Set attributes on a camp document. Returns False when no document matched."""
        with tracer.start_as_current_span("db.update_by_key") as span:
            span.set_attributes({
                "db.collection": collection,
                "db.operation": "update",
                "camp.id": camp_id
            })
            query = self._build_camp_query(camp_id, {"_id": {"$in": key_candidates(key)}})
            try:
                result = self.get_collection(collection).update_one(query, {"$set": updates})
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(
                    f"Failed to update document {key} in {collection}",
                    extra={"camp_id": camp_id, "collection": collection, "error": str(e)}
                )
                raise RecordStoreError("update", collection, camp_id, key, e) from e

            if result.matched_count > 0:
                logger.info(f"Updated document {key} in {collection}")
                return True
            logger.warning(f"No document matched {key} in {collection} for camp {camp_id}")
            return False

    # Unscoped operations

    def find_across_camps(self, collection: str, filters: Dict) -> List[Dict]:
        """Find documents in every camp. Only login needs this."""
        with tracer.start_as_current_span("db.find_across_camps") as span:
            span.set_attributes({
                "db.collection": collection,
                "db.operation": "find_across_camps"
            })
            try:
                documents = [self._to_record(doc) for doc in self.get_collection(collection).find(filters)]
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(
                    f"Failed cross-camp lookup in {collection}",
                    extra={"collection": collection, "error": str(e)}
                )
                raise RecordStoreError("find_across_camps", collection, None, None, e) from e

            span.set_attribute("db.result_count", len(documents))
            return documents

    def get_camp(self, camp_id: str) -> Optional[Dict]:
        """Get a camp document by key."""
        with tracer.start_as_current_span("db.get_camp") as span:
            span.set_attribute("camp.id", camp_id)
            try:
                document = self.get_collection(CAMPS).find_one({"_id": {"$in": key_candidates(camp_id)}})
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(f"Failed to get camp {camp_id}: {e}")
                raise RecordStoreError("get_by_key", CAMPS, camp_id, camp_id, e) from e

            return self._to_record(document) if document else None

    # Index Management

    def create_indexes(self) -> None:
        """Create lookup indexes for the portal's query paths."""
        try:
            logger.info("Creating MongoDB indexes...")

            beneficiaries = self.get_collection(BENEFICIARIES)
            beneficiaries.create_index("head_id_number")
            beneficiaries.create_index([(SCOPE_FIELD, ASCENDING), ("head_id_number", ASCENDING)])

            distributions = self.get_collection(DISTRIBUTIONS)
            distributions.create_index([(SCOPE_FIELD, ASCENDING), ("beneficiary_id", ASCENDING)])

            parcels = self.get_collection(PARCELS)
            parcels.create_index([(SCOPE_FIELD, ASCENDING), ("id", ASCENDING)])

            complaints = self.get_collection(COMPLAINTS)
            complaints.create_index([
                (SCOPE_FIELD, ASCENDING), ("beneficiary_id", ASCENDING), ("created_at", DESCENDING)
            ])

            logger.info("MongoDB indexes created successfully")

        except PyMongoError as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise RecordStoreError("create_indexes", "*", None, None, e) from e


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
