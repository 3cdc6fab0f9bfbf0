"""
Configuration constants for hutch.

This module contains centralized configuration for well-known exchange names,
content types and routing namespaces used throughout the application.
"""

from dataclasses import dataclass

# Global service name for logging
SERVICE_NAME = "hutch"


@dataclass(frozen=True)
class RabbitMQConfig:
    """Connection settings for a single broker."""

    host: str = "localhost"
    port: int = 5672
    username: str = "guest"
    password: str = "guest"
    virtual_host: str = "/"
    ssl_enabled: bool = False
    ssl_hostname: str = ""
    heartbeat_interval: int = 30


class HutchConfig:
    """Centralized configuration for hutch publishers and samples."""

    DEFAULT_CONTENT_TYPE = "application/json"

    # AMQP delivery modes
    DELIVERY_MODE_TRANSIENT = 1
    DELIVERY_MODE_PERSISTENT = 2

    # Sample exchanges and namespaces
    PRICES_EXCHANGE = "prices"
    PRICES_NAMESPACE = "prices"
    SHARED_EXCHANGE = "shared-subscriptions"
    SHARED_NAMESPACE = "shared"
    CONNECT_EXCHANGE = "ticker-connect"
    CONNECT_QUEUE = "ticker-connect-queue"

    # Sample process names used for log identification
    SHARED_PUBLISHER = "shared-publisher"
    TICKER_SERVER = "ticker-server"

    KNOWN_SERVICE_NAMES = frozenset([SHARED_PUBLISHER, TICKER_SERVER])

    @classmethod
    def validate_service_name(cls, service_name: str) -> str:
        """Validate and return service name."""
        if service_name not in cls.KNOWN_SERVICE_NAMES:
            raise ValueError(
                f"Unknown service name: {service_name}. Valid options are: {', '.join(sorted(cls.KNOWN_SERVICE_NAMES))}"
            )
        return service_name
