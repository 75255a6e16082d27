# SPDX-License-Identifier: Apache-2.0

"""
Redis service for the session token blocklist.

Logging out writes the token identifier to Redis for the remaining token
lifetime; session checks reject blocked identifiers. Uses the Upstash HTTP
client for serverless compatibility.
"""

import os
import time
from typing import Optional, Dict, Any
from upstash_redis import Redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

BLOCKLIST_PREFIX = "tawzi:session:revoked:"


class RedisConnectionError(Exception):
    """Raised when Redis connection fails."""
    pass


class RedisService:
    """
    Redis service with Upstash HTTP client.

    Without a configured ``REDIS_URL`` the service is unavailable: nothing is
    blocked and logout cannot revoke tokens before they expire.
    """

    def __init__(self, redis_url: Optional[str] = None, redis_token: Optional[str] = None):
        """
        Initialize the Redis service.

        Args:
            redis_url: Upstash Redis HTTP URL
            redis_token: Upstash Redis authentication token
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL")
        self.redis_token = redis_token or os.getenv("REDIS_TOKEN")

        if not self.redis_url:
            logger.warning("No REDIS_URL configured, token blocklist will be disabled")
            self.client = None
            return

        try:
            self.client = Redis(url=self.redis_url, token=self.redis_token or "")
            self._test_connection()
            logger.info("Redis service initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize Redis service: {str(e)}")
            self.client = None

    def _test_connection(self) -> None:
        """Test Redis connection."""
        result = self.client.ping()
        if result != "PONG":
            raise RedisConnectionError("Redis ping failed")

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    def _handle_redis_error(self, operation: str, error: Exception) -> None:
        """Log Redis operation errors; blocklist operations fail soft."""
        logger.error(f"Redis {operation} failed: {str(error)}")

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        """
        Set a key-value pair with TTL.

        Returns:
            True if successful, False otherwise
        """
        if not self.is_available():
            return False

        with tracer.start_as_current_span("redis.set_with_ttl") as span:
            span.set_attributes({
                "redis.operation": "set_with_ttl",
                "redis.ttl": ttl_seconds
            })

            try:
                result = self.client.setex(key, ttl_seconds, value)
            except Exception as e:
                span.set_attribute("redis.result", "error")
                self._handle_redis_error("SET", e)
                return False

            span.set_attribute("redis.result", "success")
            return result in ("OK", True)

    def exists(self, key: str) -> bool:
        """Check if key exists."""
        if not self.is_available():
            return False

        try:
            return self.client.exists(key) > 0
        except Exception as e:
            self._handle_redis_error("EXISTS", e)
            return False

    # Session Token Blocklist

    def is_token_blocked(self, token_id: str) -> bool:
        """
        Check if a session token is in the blocklist.

        Args:
            token_id: The token ``jti`` claim

        Returns:
            True if token is blocked, False otherwise
        """
        if not self.is_available():
            logger.warning("Redis unavailable for token blocklist check - allowing token")
            return False

        with tracer.start_as_current_span("redis.is_token_blocked") as span:
            span.set_attribute("redis.operation", "is_token_blocked")

            result = self.exists(f"{BLOCKLIST_PREFIX}{token_id}")

            span.set_attribute("auth.token_blocked", result)
            return result

    def block_token(self, token_id: str, ttl_seconds: int) -> bool:
        """
        Add a session token to the blocklist.

        Args:
            token_id: The token ``jti`` claim
            ttl_seconds: Remaining token lifetime

        Returns:
            True if token was blocked, False otherwise
        """
        if not self.is_available():
            logger.error("Redis unavailable - cannot block token")
            return False

        with tracer.start_as_current_span("redis.block_token") as span:
            span.set_attributes({
                "redis.operation": "block_token",
                "redis.ttl": ttl_seconds
            })

            result = self.set_with_ttl(f"{BLOCKLIST_PREFIX}{token_id}", "1", ttl_seconds)

            span.set_attribute("auth.token_block_result", "success" if result else "failed")
            if result:
                logger.info(f"Session token revoked (TTL: {ttl_seconds}s)")
            else:
                logger.error("Failed to revoke session token")

            return result

    # Health Check Methods

    def ping(self) -> bool:
        """Ping Redis server."""
        if not self.is_available():
            return False

        try:
            return self.client.ping() == "PONG"
        except Exception as e:
            logger.error(f"Redis ping failed: {str(e)}")
            return False

    def health_check(self) -> Dict[str, Any]:
        """
        Perform Redis health check.

        Returns:
            Health check results
        """
        if not self.is_available():
            return {
                "status": "unavailable",
                "message": "Redis client not initialized",
                "timestamp": time.time()
            }

        start_time = time.time()
        healthy = self.ping()
        response_time = (time.time() - start_time) * 1000  # ms

        return {
            "status": "healthy" if healthy else "unhealthy",
            "response_time_ms": round(response_time, 2),
            "timestamp": time.time()
        }

