"""
Tawzi3 Portal API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the services behind the beneficiary
portal of the aid distribution program.
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .middleware.auth import SessionMiddleware
from .middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from .services.auth import AuthService
from .services.beneficiary import BeneficiaryService
from .services.hal import create_hal_formatter
from .services.health import HealthCheckService, SERVICE_NAME, SERVICE_VERSION
from .services.mongodb import MongoDBService
from .services.qr import QRCodeService
from .services.redis import RedisService

# OpenAPI info
info = Info(
    title="Tawzi3 Portal API",
    version=SERVICE_VERSION,
    description="Beneficiary portal of the Tawzi3 aid distribution program with HAL responses"
)

health_tag = Tag(name="Health", description="System health and status")


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def load_config() -> Dict[str, Any]:
    """Application configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'DOCS_ENABLED': _flag('DOCS_ENABLED', 'true'),
        'OTEL_ENABLED': _flag('OTEL_ENABLED', 'true'),

        # Record store
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/tawzi3_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'tawzi3_dev'),
        'MONGODB_TIMEOUT_MS': int(os.getenv('MONGODB_TIMEOUT_MS', '10000')),

        # Token blocklist
        'REDIS_URL': os.getenv('REDIS_URL', ''),
        'REDIS_TOKEN': os.getenv('REDIS_TOKEN', ''),

        # Session tokens
        'JWT_PRIVATE_KEY': os.getenv('JWT_PRIVATE_KEY'),
        'JWT_PUBLIC_KEY': os.getenv('JWT_PUBLIC_KEY'),
        'ACCESS_TOKEN_MINUTES': int(os.getenv('ACCESS_TOKEN_MINUTES', '60')),
        'REFRESH_TOKEN_DAYS': int(os.getenv('REFRESH_TOKEN_DAYS', '30')),

        # Portal
        'MIN_PASSWORD_LENGTH': int(os.getenv('MIN_PASSWORD_LENGTH', '6')),
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000')
    }


def create_app(
    config: Optional[Dict[str, Any]] = None,
    mongodb_service=None,
    redis_service=None,
    auth_service: Optional[AuthService] = None
) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        config: Settings overriding the environment
        mongodb_service: Record store to use instead of a MongoDB connection
        redis_service: Token blocklist to use instead of Upstash Redis
        auth_service: Session token service

    Returns:
        Configured Flask application
    """
    settings = load_config()
    settings.update(config or {})

    # Initialize observability first
    setup_observability(settings['ENVIRONMENT'], settings['OTEL_ENABLED'])

    doc_kwargs = {} if settings['DOCS_ENABLED'] else {'doc_ui': False}
    app = OpenAPI(__name__, info=info, **doc_kwargs)
    app.config.update(settings)

    add_observability_middleware(app)

    # Initialize services
    if mongodb_service is None:
        mongodb_service = MongoDBService(
            settings['MONGODB_URI'],
            settings['MONGODB_DATABASE'],
            settings['MONGODB_TIMEOUT_MS']
        )
    if redis_service is None:
        redis_service = RedisService(settings['REDIS_URL'] or None, settings['REDIS_TOKEN'] or None)
    if auth_service is None:
        auth_service = AuthService(
            settings['JWT_PRIVATE_KEY'],
            settings['JWT_PUBLIC_KEY'],
            settings['ACCESS_TOKEN_MINUTES'],
            settings['REFRESH_TOKEN_DAYS']
        )

    beneficiary_service = BeneficiaryService(
        mongodb_service,
        QRCodeService(),
        settings['MIN_PASSWORD_LENGTH']
    )
    health_service = HealthCheckService(mongodb_service, redis_service)

    # Initialize middleware
    hal_formatter = create_hal_formatter(settings['BASE_URL'])
    session_middleware = SessionMiddleware(auth_service, redis_service)
    ErrorHandlerMiddleware(app, hal_formatter)
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.redis_service = redis_service
    app.auth_service = auth_service
    app.beneficiary_service = beneficiary_service
    app.health_service = health_service
    app.hal_formatter = hal_formatter
    app.session_middleware = session_middleware

    # Register routes
    from .routes.auth import auth_bp
    from .routes.beneficiary import portal_bp

    app.register_api(auth_bp)
    app.register_api(portal_bp)

    @app.get('/api/healthz', tags=[health_tag])
    def health_check():
        """Dependency health: record store and token blocklist."""
        try:
            health_data = health_service.get_health()
        except Exception as e:
            # Fallback health response if health service fails
            health_data = {
                "status": "unhealthy",
                "service": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "environment": app.config['ENVIRONMENT'],
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": f"Health check service failed: {str(e)}"
            }

        status_code = 503 if health_data["status"] == "unhealthy" else 200

        links = {'self': hal_formatter.builder.link_builder.build_self_link('/api/healthz')}
        return jsonify(hal_formatter.builder.build_resource_response(health_data, links)), status_code

    return app


if __name__ == '__main__':
    # Development server
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
