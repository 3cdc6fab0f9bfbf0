import logging
import ssl
import threading
from typing import Optional

import amqpstorm

from hutch.bus import Bus
from hutch.config import RabbitMQConfig

logger = logging.getLogger(__name__)

__GLOBALS = {}
__GLOBALS_LOCK = threading.RLock()


def init_rabbitmq(
    host: str,
    port: int,
    username: str,
    password: str,
    virtual_host: str = "/",
    ssl_enabled: bool = False,
    ssl_options: Optional[dict] = None,
    heartbeat_interval: int = 30,
) -> amqpstorm.Connection:
    """Initialize the process wide RabbitMQ connection using AMQPStorm."""
    connection_params = {
        "hostname": host,
        "port": port,
        "username": username,
        "password": password,
        "virtual_host": virtual_host,
        "ssl": ssl_enabled,
        "ssl_options": ssl_options or {},
        "heartbeat": heartbeat_interval,
    }

    with __GLOBALS_LOCK:
        if "rmq_connection" in __GLOBALS:
            logger.debug("rmq connection already initialized")
            return __GLOBALS["rmq_connection"]

        logger.info(
            "Establishing RabbitMQ connection to %s:%s vhost=%s heartbeat=%s SSL=%s",
            host,
            port,
            virtual_host,
            heartbeat_interval,
            ssl_enabled,
        )
        connection = amqpstorm.Connection(**connection_params)
        __GLOBALS["rmq_connection"] = connection

    logger.info("rmq connection established")
    return connection


def init_rabbitmq_from_config(config: RabbitMQConfig) -> amqpstorm.Connection:
    ssl_options = None
    if config.ssl_enabled:
        ssl_options = get_rabbitmq_ssl_options(config.ssl_hostname)
    return init_rabbitmq(
        host=config.host,
        port=config.port,
        username=config.username,
        password=config.password,
        virtual_host=config.virtual_host,
        ssl_enabled=config.ssl_enabled,
        ssl_options=ssl_options,
        heartbeat_interval=config.heartbeat_interval,
    )


def get_rabbitmq_ssl_options(hostname: str) -> dict:
    """Create SSL options for a verified TLS 1.2+ connection."""
    if hostname is None or len(hostname) == 0:
        raise RuntimeError(
            "SSL is enabled but no hostname provided. "
            "Please set HUTCH_RABBITMQ_SSL_HOSTNAME"
        )

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.load_default_certs(purpose=ssl.Purpose.SERVER_AUTH)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED

    ssl_options = {
        "context": context,
        "server_hostname": hostname,
    }

    logger.debug("Created SSL context for hostname: %s", hostname)
    return ssl_options


def get_rabbitmq_connection() -> amqpstorm.Connection:
    with __GLOBALS_LOCK:
        if "rmq_connection" not in __GLOBALS:
            raise RuntimeError("rmq_connection not defined - cannot start")
        return __GLOBALS["rmq_connection"]


def create_bus() -> Bus:
    """Create a bus on the process wide connection."""
    return Bus(get_rabbitmq_connection())


def shutdown_rabbitmq() -> None:
    """Shutdown the RabbitMQ connection properly."""
    with __GLOBALS_LOCK:
        connection: Optional[amqpstorm.Connection] = __GLOBALS.pop("rmq_connection", None)

    if connection is None:
        return
    try:
        if connection.is_open:
            connection.close()
            logger.info("rmq connection closed")
    except amqpstorm.AMQPError as e:
        logger.exception("Error closing connection: %s", e)
