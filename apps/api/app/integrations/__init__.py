from app.integrations.errors import (
    IntegrationBadGatewayError,
    IntegrationError,
    IntegrationNotFoundError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)

__all__ = [
    "IntegrationError",
    "IntegrationTimeoutError",
    "IntegrationUnavailableError",
    "IntegrationBadGatewayError",
    "IntegrationNotFoundError",
]
