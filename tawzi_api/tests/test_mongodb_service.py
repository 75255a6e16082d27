# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for MongoDB service layer.
"""

import pytest
from unittest.mock import MagicMock, Mock
from bson import ObjectId
from pymongo import DESCENDING
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from tawzi_api.services.mongodb import MongoDBService, RecordStoreError, key_candidates


class TestKeyCandidates:
    """Store representations of a document key."""

    def test_object_id_text(self):
        key = str(ObjectId())

        assert key_candidates(key) == [ObjectId(key), key]

    def test_plain_text_key(self):
        assert key_candidates("ben-1") == ["ben-1"]

    def test_numeric_key(self):
        assert key_candidates(42) == ["42"]


class TestMongoDBService:
    """Test MongoDB service functionality against a mocked driver."""

    @pytest.fixture
    def collection(self):
        return MagicMock()

    @pytest.fixture
    def mongodb_service(self, collection):
        """MongoDB service whose collections are mocks."""
        service = MongoDBService("mongodb://localhost:27017/tawzi3_test", "tawzi3_test", timeout_ms=2000)
        service._database = MagicMock()
        service._database.__getitem__.return_value = collection
        return service

    def test_find_by_camp_scopes_query_and_exposes_key(self, mongodb_service, collection):
        oid = ObjectId()
        collection.find.return_value = [{"_id": oid, "campId": "camp-1", "id": 5, "name": "طرد"}]

        documents = mongodb_service.find_by_camp("parcels", "camp-1", {"id": 5})

        collection.find.assert_called_once_with({"campId": "camp-1", "id": 5})
        assert documents == [{"_key": str(oid), "campId": "camp-1", "id": 5, "name": "طرد"}]

    def test_find_by_camp_with_sort(self, mongodb_service, collection):
        cursor = MagicMock()
        cursor.sort.return_value = []
        collection.find.return_value = cursor

        mongodb_service.find_by_camp("complaints", "camp-1", {"beneficiary_id": "ben-1"},
                                     sort_by="created_at", sort_order=DESCENDING)

        cursor.sort.assert_called_once_with("created_at", DESCENDING)

    def test_find_by_camp_failure_carries_scope(self, mongodb_service, collection):
        timeout = ServerSelectionTimeoutError("no servers")
        collection.find.side_effect = timeout

        with pytest.raises(RecordStoreError) as exc_info:
            mongodb_service.find_by_camp("distribution", "camp-1", {"beneficiary_id": 17})

        error = exc_info.value
        assert error.operation == "find"
        assert error.collection == "distribution"
        assert error.camp_id == "camp-1"
        assert error.candidate == 17
        assert error.__cause__ is timeout
        assert error.scope == {
            "operation": "find", "collection": "distribution", "camp_id": "camp-1", "candidate": 17
        }

    def test_find_one_by_key_tries_object_id_and_text(self, mongodb_service, collection):
        key = str(ObjectId())
        collection.find_one.return_value = {"_id": ObjectId(key), "campId": "camp-1"}

        document = mongodb_service.find_one_by_key("beneficiaries", "camp-1", key)

        collection.find_one.assert_called_once_with(
            {"campId": "camp-1", "_id": {"$in": [ObjectId(key), key]}}
        )
        assert document["_key"] == key

    def test_find_one_by_key_missing(self, mongodb_service, collection):
        collection.find_one.return_value = None

        assert mongodb_service.find_one_by_key("parcels", "camp-1", "p-1") is None

    def test_create_uses_server_timestamp(self, mongodb_service, collection):
        key = mongodb_service.create(
            "complaints", "camp-1",
            {"beneficiary_id": "ben-1", "complaint_text": "نص", "status": "pending"},
            server_timestamp_fields=("created_at",)
        )

        assert ObjectId.is_valid(key)
        collection.update_one.assert_called_once_with(
            {"_id": ObjectId(key)},
            {
                "$setOnInsert": {
                    "beneficiary_id": "ben-1",
                    "complaint_text": "نص",
                    "status": "pending",
                    "campId": "camp-1"
                },
                "$currentDate": {"created_at": {"$type": "date"}}
            },
            upsert=True
        )

    def test_create_failure(self, mongodb_service, collection):
        collection.update_one.side_effect = OperationFailure("not primary")

        with pytest.raises(RecordStoreError) as exc_info:
            mongodb_service.create("complaints", "camp-1", {"complaint_text": "نص"})

        assert exc_info.value.operation == "create"

    def test_update_by_key(self, mongodb_service, collection):
        collection.update_one.return_value = Mock(matched_count=1)

        assert mongodb_service.update_by_key("beneficiaries", "camp-1", "ben-1", {"password_hash": "ab"}) is True
        collection.update_one.assert_called_once_with(
            {"campId": "camp-1", "_id": {"$in": ["ben-1"]}},
            {"$set": {"password_hash": "ab"}}
        )

    def test_update_by_key_no_match(self, mongodb_service, collection):
        collection.update_one.return_value = Mock(matched_count=0)

        assert mongodb_service.update_by_key("beneficiaries", "camp-1", "ben-1", {"password_hash": "ab"}) is False

    def test_find_across_camps(self, mongodb_service, collection):
        collection.find.return_value = [
            {"_id": "ben-1", "campId": "camp-1", "head_id_number": "401234567"}
        ]

        documents = mongodb_service.find_across_camps("beneficiaries", {"head_id_number": "401234567"})

        collection.find.assert_called_once_with({"head_id_number": "401234567"})
        assert documents[0]["_key"] == "ben-1"
        assert documents[0]["campId"] == "camp-1"

    def test_get_camp(self, mongodb_service, collection):
        collection.find_one.return_value = {"_id": "camp-1", "camp_name": "مخيم الأمل"}

        camp = mongodb_service.get_camp("camp-1")

        collection.find_one.assert_called_once_with({"_id": {"$in": ["camp-1"]}})
        assert camp == {"_key": "camp-1", "camp_name": "مخيم الأمل"}

    def test_health_check(self, mongodb_service):
        mongodb_service._client = MagicMock()
        mongodb_service._client.admin.command.return_value = {"ok": 1}
        mongodb_service._client.server_info.return_value = {"version": "7.0.2"}

        health = mongodb_service.health_check()

        assert health["status"] == "healthy"
        assert health["ping"] is True
        assert health["version"] == "7.0.2"
        assert health["database"] == "tawzi3_test"

    def test_health_check_unreachable(self, mongodb_service):
        mongodb_service._client = MagicMock()
        mongodb_service._client.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

        health = mongodb_service.health_check()

        assert health["status"] == "unhealthy"
        assert "no servers" in health["error"]
