"""
Health Check Service

Reports the health of the portal's dependencies: the MongoDB record store
(required) and the Redis token blocklist (optional).
"""

import os
import time
from datetime import datetime, timezone
from typing import Dict, Any
from opentelemetry import trace

from .mongodb import MongoDBService
from .redis import RedisService

tracer = trace.get_tracer(__name__)

SERVICE_NAME = "tawzi3-portal-api"
SERVICE_VERSION = "1.0.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthCheckService:
    """Service for dependency health monitoring."""

    def __init__(self, mongodb_service: MongoDBService, redis_service: RedisService):
        self.mongodb_service = mongodb_service
        self.redis_service = redis_service
        self.service_version = SERVICE_VERSION

    def get_health(self) -> Dict[str, Any]:
        """Get health status of all dependencies."""
        with tracer.start_as_current_span("health.check") as span:
            start_time = time.time()

            mongodb_health = self._check_mongodb_health()
            redis_health = self._check_redis_health()

            overall_status = self._determine_overall_status(
                mongodb_health["status"], redis_health["status"]
            )

            response_time_ms = round((time.time() - start_time) * 1000, 2)

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.mongodb_status": mongodb_health["status"],
                "health.redis_status": redis_health["status"]
            })

            return {
                "status": overall_status,
                "service": SERVICE_NAME,
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": _now(),
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "mongodb": mongodb_health,
                    "redis": redis_health
                }
            }

    def _check_mongodb_health(self) -> Dict[str, Any]:
        """Check MongoDB connectivity."""
        with tracer.start_as_current_span("health.mongodb_check") as span:
            start_time = time.time()
            result = self.mongodb_service.health_check()
            result["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
            result["last_check"] = _now()

            span.set_attribute("mongodb.status", result.get("status", "unhealthy"))
            return result

    def _check_redis_health(self) -> Dict[str, Any]:
        """Check Redis connectivity."""
        with tracer.start_as_current_span("health.redis_check") as span:
            result = self.redis_service.health_check()
            result["last_check"] = _now()

            span.set_attribute("redis.status", result.get("status", "unhealthy"))
            return result

    def _determine_overall_status(self, mongodb_status: str, redis_status: str) -> str:
        """
        Overall status from dependency health.

        The record store is required. The blocklist is optional, so an
        unconfigured Redis does not degrade the service but a failing one does.
        """
        if mongodb_status != "healthy":
            return "unhealthy"
        if redis_status in ("healthy", "unavailable"):
            return "healthy"
        return "degraded"
