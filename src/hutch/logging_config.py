"""
Centralized logging configuration for hutch processes.

This module provides consistent logging setup across the sample processes
and any application embedding the publisher.
"""

import logging
import sys
from typing import Optional

from hutch.config import SERVICE_NAME


def setup_logging(
    level: int = logging.INFO,
    microservice_name: Optional[str] = None,
    force_setup: bool = False,
) -> None:
    """
    Setup logging configuration for hutch processes.

    Args:
        level: Logging level (default: INFO)
        microservice_name: Name of the process (e.g., 'ticker-server')
        force_setup: Whether to force reconfiguration even if already setup
    """
    root_logger = logging.getLogger()
    if root_logger.handlers and not force_setup:
        # Logging already configured, just ensure our level is set
        root_logger.setLevel(level)
        return

    if force_setup:
        root_logger.handlers.clear()

    _setup_console_logging(microservice_name)
    root_logger.setLevel(level)

    # Reduce noise from the amqp client
    logging.getLogger("amqpstorm").setLevel(logging.WARNING)

    logging.getLogger(SERVICE_NAME).setLevel(level)


def create_formatter(microservice_name: Optional[str] = None) -> logging.Formatter:
    """
    Create a standardized formatter for hutch processes.

    Args:
        microservice_name: Name of the process for log identification

    Returns:
        Configured logging formatter
    """
    if microservice_name:
        service_prefix = f"[{microservice_name}] "
    else:
        service_prefix = ""

    return logging.Formatter(
        f"%(asctime)s - {service_prefix}%(name)s - %(levelname)s - %(message)s"
    )


def _setup_console_logging(microservice_name: Optional[str] = None) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(create_formatter(microservice_name))
    logging.getLogger().addHandler(handler)
