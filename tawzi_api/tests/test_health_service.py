# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for dependency health reporting and the Redis token blocklist.
"""

import pytest
from unittest.mock import MagicMock, patch

from tawzi_api.services.health import HealthCheckService
from tawzi_api.services.redis import BLOCKLIST_PREFIX, RedisService


@pytest.fixture
def upstash_client():
    """Mocked Upstash client returned by the Redis constructor."""
    with patch('tawzi_api.services.redis.Redis') as redis_cls:
        client = MagicMock()
        client.ping.return_value = "PONG"
        redis_cls.return_value = client
        yield client


@pytest.fixture
def redis_service(upstash_client):
    return RedisService("https://example.upstash.io", "token")


class TestRedisService:
    """Token blocklist on the Upstash client."""

    def test_block_token_uses_ttl(self, redis_service, upstash_client):
        upstash_client.setex.return_value = "OK"

        assert redis_service.block_token("abc", 120) is True
        upstash_client.setex.assert_called_once_with(f"{BLOCKLIST_PREFIX}abc", 120, "1")

    def test_is_token_blocked(self, redis_service, upstash_client):
        upstash_client.exists.return_value = 1

        assert redis_service.is_token_blocked("abc") is True
        upstash_client.exists.assert_called_once_with(f"{BLOCKLIST_PREFIX}abc")

    def test_lookup_failure_allows_token(self, redis_service, upstash_client):
        upstash_client.exists.side_effect = ConnectionError("timeout")

        assert redis_service.is_token_blocked("abc") is False

    def test_unconfigured_service(self):
        service = RedisService(None, None)

        assert service.is_available() is False
        assert service.block_token("abc", 60) is False
        assert service.is_token_blocked("abc") is False
        assert service.health_check()["status"] == "unavailable"

    def test_failed_connection_disables_client(self, upstash_client):
        upstash_client.ping.side_effect = ConnectionError("refused")

        service = RedisService("https://example.upstash.io", "token")

        assert service.is_available() is False

    def test_health_check(self, redis_service, upstash_client):
        assert redis_service.health_check()["status"] == "healthy"

        upstash_client.ping.side_effect = ConnectionError("refused")
        assert redis_service.health_check()["status"] == "unhealthy"


class TestHealthCheckService:
    """Overall status from dependency health."""

    @pytest.mark.parametrize("mongodb,redis,expected", [
        ("healthy", "healthy", "healthy"),
        ("healthy", "unavailable", "healthy"),
        ("healthy", "unhealthy", "degraded"),
        ("unhealthy", "healthy", "unhealthy"),
        ("unhealthy", "unavailable", "unhealthy"),
    ])
    def test_overall_status(self, mongodb, redis, expected):
        mongodb_service = MagicMock()
        mongodb_service.health_check.return_value = {"status": mongodb}
        redis_service = MagicMock()
        redis_service.health_check.return_value = {"status": redis}

        health = HealthCheckService(mongodb_service, redis_service).get_health()

        assert health["status"] == expected
        assert health["dependencies"]["mongodb"]["status"] == mongodb
        assert "response_time_ms" in health["dependencies"]["mongodb"]
        assert "last_check" in health["dependencies"]["redis"]
        assert health["version"] == "1.0.0"
