# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import copy
import pytest
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from bson import ObjectId
from pymongo import DESCENDING
from pymongo.errors import ServerSelectionTimeoutError

from tawzi_api.domain.credentials import hash_secret
from tawzi_api.services.auth import AuthService
from tawzi_api.services.mongodb import RecordStoreError

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

CAMP_ID = "camp-1"
OTHER_CAMP_ID = "camp-2"
PHONE = "0599123456"
PASSWORD = "secret123"


class FakeRecordStore:
    """In-memory record store with the camp-scoped interface of MongoDBService."""

    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.failing: set = set()
        self.healthy = True

    def insert(self, collection: str, document: Dict[str, Any]) -> str:
        record = dict(document)
        record.setdefault("_key", str(ObjectId()))
        self.collections.setdefault(collection, []).append(record)
        return record["_key"]

    def documents(self, collection: str) -> List[Dict[str, Any]]:
        return self.collections.get(collection, [])

    def fail(self, *operations: str) -> None:
        self.failing.update(operations)

    def _check(self, operation: str, collection: str, camp_id: Optional[str] = None, candidate: Any = None):
        if operation in self.failing:
            raise RecordStoreError(operation, collection, camp_id, candidate,
                                   ServerSelectionTimeoutError("store unreachable"))

    @staticmethod
    def _matches(document: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        for field, value in (filters or {}).items():
            if field not in document or document[field] != value:
                return False
            # Stored type must match, as in MongoDB
            if type(document[field]) is not type(value):
                return False
        return True

    def find_by_camp(self, collection: str, camp_id: str, filters: Dict = None,
                     sort_by: Optional[str] = None, sort_order: int = DESCENDING) -> List[Dict]:
        self.calls.append(("find_by_camp", collection, camp_id, dict(filters or {})))
        self._check("find_by_camp", collection, camp_id, filters)
        documents = [
            copy.deepcopy(doc) for doc in self.documents(collection)
            if doc.get("campId") == camp_id and self._matches(doc, filters)
        ]
        if sort_by:
            documents.sort(key=lambda doc: doc.get(sort_by), reverse=sort_order == DESCENDING)
        return documents

    def find_one_by_key(self, collection: str, camp_id: str, key: Any) -> Optional[Dict]:
        self.calls.append(("find_one_by_key", collection, camp_id, key))
        self._check("find_one_by_key", collection, camp_id, key)
        for doc in self.documents(collection):
            if doc.get("campId") == camp_id and doc["_key"] == str(key):
                return copy.deepcopy(doc)
        return None

    def find_across_camps(self, collection: str, filters: Dict) -> List[Dict]:
        self.calls.append(("find_across_camps", collection, None, dict(filters)))
        self._check("find_across_camps", collection)
        return [copy.deepcopy(doc) for doc in self.documents(collection) if self._matches(doc, filters)]

    def get_camp(self, camp_id: str) -> Optional[Dict]:
        self._check("get_camp", "camps", camp_id)
        for doc in self.documents("camps"):
            if doc["_key"] == camp_id:
                return copy.deepcopy(doc)
        return None

    def create(self, collection: str, camp_id: str, document: Dict, server_timestamp_fields=()) -> str:
        self._check("create", collection, camp_id)
        record = dict(document)
        record["campId"] = camp_id
        for field in server_timestamp_fields:
            record[field] = datetime.now(timezone.utc)
        return self.insert(collection, record)

    def update_by_key(self, collection: str, camp_id: str, key: Any, updates: Dict) -> bool:
        self._check("update_by_key", collection, camp_id, key)
        for doc in self.documents(collection):
            if doc.get("campId") == camp_id and doc["_key"] == str(key):
                doc.update(updates)
                return True
        return False

    def health_check(self) -> Dict[str, Any]:
        if self.healthy:
            return {"status": "healthy", "ping": True, "database": "tawzi3_test"}
        return {"status": "unhealthy", "error": "store unreachable", "database": "tawzi3_test"}


class FakeBlocklist:
    """In-memory token blocklist with the interface of RedisService."""

    def __init__(self, available: bool = True):
        self.available = available
        self.healthy = True
        self.blocked: Dict[str, int] = {}

    def is_available(self) -> bool:
        return self.available

    def is_token_blocked(self, token_id: str) -> bool:
        return self.available and token_id in self.blocked

    def block_token(self, token_id: str, ttl_seconds: int) -> bool:
        if not self.available:
            return False
        self.blocked[token_id] = ttl_seconds
        return True

    def health_check(self) -> Dict[str, Any]:
        if not self.available:
            return {"status": "unavailable", "message": "Redis client not initialized"}
        return {"status": "healthy" if self.healthy else "unhealthy"}


def seed_camp_records(store: FakeRecordStore) -> None:
    """Two camps, one phone-mode and one password-mode beneficiary, parcels and distributions."""
    store.insert("camps", {
        "_key": CAMP_ID,
        "camp_name": "مخيم الأمل",
        "location": "خان يونس",
        "representative_name": "محمد علي",
        "representative_phone": "0599888777"
    })
    store.insert("camps", {"_key": OTHER_CAMP_ID, "camp_name": "مخيم النور"})

    store.insert("beneficiaries", {
        "_key": "ben-1",
        "campId": CAMP_ID,
        "id": 17,
        "head_name": "أحمد محمود",
        "head_id_number": "401234567",
        "main_phone": PHONE,
        "males_0_2": 1,
        "males_17_60": "1",
        "females_5_17": 1,
        "females_17_60": 2,
        "disabled_count": "1",
        "governorate": "غزة",
        "town": "الشجاعية",
        "landmark": "قرب المسجد الكبير"
    })
    store.insert("beneficiaries", {
        "_key": "ben-2",
        "campId": OTHER_CAMP_ID,
        "head_name": "سارة خليل",
        "head_id_number": "402222222",
        "main_phone": "0599000000",
        "password_hash": hash_secret(PASSWORD),
        "family_count": 4
    })

    store.insert("parcels", {
        "_key": "p-food", "campId": CAMP_ID, "id": 5, "name": "طرد غذائي",
        "description": "دقيق وزيت", "type_parcel": "غذائي", "status": "مفتوح", "date": "2025-02-01"
    })
    store.insert("parcels", {
        "_key": "p-hygiene", "campId": CAMP_ID, "id": 6, "name": "طرد صحي",
        "type_parcel": "صحي", "status": "انتهى", "date": "2025-01-01"
    })
    store.insert("parcels", {
        "_key": "p-blanket", "campId": CAMP_ID, "id": 7, "name": "بطانيات",
        "type_parcel": "شتوي", "status": "انتهى", "date": "2025-01-10"
    })

    # Referenced by store key, by embedded id (int) and by embedded id as text
    store.insert("distribution", {
        "_key": "d-1", "campId": CAMP_ID, "beneficiary_id": "ben-1", "parcel_id": "p-food",
        "status": "استلم", "distribution_date": "2025-02-03"
    })
    store.insert("distribution", {
        "_key": "d-2", "campId": CAMP_ID, "beneficiary_id": "ben-1", "parcel_id": 6,
        "status": "لم يستلم"
    })
    store.insert("distribution", {
        "_key": "d-3", "campId": CAMP_ID, "beneficiary_id": "ben-1", "parcel_id": "7",
        "status": "استلم", "distribution_date": "2025-01-12"
    })
    # Same beneficiary key in another camp must never leak
    store.insert("distribution", {
        "_key": "d-4", "campId": OTHER_CAMP_ID, "beneficiary_id": "ben-1", "parcel_id": "p-food",
        "status": "استلم"
    })


@pytest.fixture(scope="session")
def auth_service():
    """Session token service with a generated key pair."""
    return AuthService()


@pytest.fixture
def empty_store():
    """Record store without records."""
    return FakeRecordStore()


@pytest.fixture
def record_store():
    """Record store seeded with two camps."""
    store = FakeRecordStore()
    seed_camp_records(store)
    return store


@pytest.fixture
def blocklist():
    """Available token blocklist."""
    return FakeBlocklist()


@pytest.fixture
def app(record_store, blocklist, auth_service):
    """Portal application backed by the in-memory services."""
    from tawzi_api.app import create_app

    application = create_app(
        config={
            "ENVIRONMENT": "test",
            "OTEL_ENABLED": False,
            "DOCS_ENABLED": False,
            "TESTING": True,
            "BASE_URL": "https://portal.test"
        },
        mongodb_service=record_store,
        redis_service=blocklist,
        auth_service=auth_service
    )
    return application


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def login(client):
    """Post a login request."""
    def _login(national_id: str, credential: str):
        return client.post('/api/auth/login', json={"national_id": national_id, "credential": credential})
    return _login


@pytest.fixture
def session_tokens(login):
    """Tokens of the phone-mode beneficiary in camp-1."""
    response = login("401234567", PHONE)
    assert response.status_code == 200
    return response.get_json()


@pytest.fixture
def auth_headers(session_tokens):
    """Authorization header of the phone-mode beneficiary."""
    return {"Authorization": f"Bearer {session_tokens['access_token']}"}
