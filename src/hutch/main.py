import logging
from typing import Optional

import typer
from click import get_current_context
from typing_extensions import Annotated

from hutch.config import HutchConfig, RabbitMQConfig
from hutch.logging_config import setup_logging
from hutch.samples.shared_subscriptions import MessagePublisher
from hutch.samples.stock_ticker import TickerServer
from hutch.util import create_bus, init_rabbitmq_from_config, shutdown_rabbitmq

app = typer.Typer()
logger = logging.getLogger(__name__)


@app.callback()
def callback(
    rabbitmq_host: Annotated[str, typer.Option(envvar="HUTCH_RABBITMQ_HOST")] = "localhost",
    rabbitmq_port: Annotated[int, typer.Option(envvar="HUTCH_RABBITMQ_PORT")] = 5672,
    rabbitmq_username: Annotated[
        str, typer.Option(envvar="HUTCH_RABBITMQ_USER")
    ] = "guest",
    rabbitmq_password: Annotated[
        str, typer.Option(envvar="HUTCH_RABBITMQ_PASSWORD")
    ] = "guest",
    rabbitmq_vhost: Annotated[str, typer.Option(envvar="HUTCH_RABBITMQ_VHOST")] = "/",
    enable_ssl: Annotated[
        bool, typer.Option(envvar="HUTCH_RABBITMQ_ENABLE_SSL")
    ] = False,
    rabbitmq_ssl_hostname: Annotated[
        Optional[str], typer.Option(envvar="HUTCH_RABBITMQ_SSL_HOSTNAME")
    ] = None,
    log_level: Annotated[str, typer.Option(envvar="HUTCH_LOG_LEVEL")] = "INFO",
):
    ctx = get_current_context()
    ctx.obj = RabbitMQConfig(
        host=rabbitmq_host,
        port=rabbitmq_port,
        username=rabbitmq_username,
        password=rabbitmq_password,
        virtual_host=rabbitmq_vhost,
        ssl_enabled=enable_ssl,
        ssl_hostname=rabbitmq_ssl_hostname or "",
    )
    ctx.meta["log_level"] = _parse_log_level(log_level)


def _parse_log_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    # getLevelName hands back "Level X" for names it does not know
    if not isinstance(level, int):
        raise typer.BadParameter(
            f"Unknown log level {log_level!r}", param_hint="--log-level"
        )
    return level


def _start(service_name: str):
    ctx = get_current_context()
    setup_logging(
        level=ctx.meta.get("log_level", logging.INFO),
        microservice_name=HutchConfig.validate_service_name(service_name),
    )
    init_rabbitmq_from_config(ctx.obj)
    return create_bus()


@app.command()
def publish_shared(
    interval: Annotated[
        float, typer.Option(help="Seconds between messages (default: 1)")
    ] = 1.0,
    max_messages: Annotated[Optional[int], typer.Option()] = None,
):
    bus = _start(HutchConfig.SHARED_PUBLISHER)
    publisher = MessagePublisher(bus, interval=interval)
    try:
        publisher.run(max_messages=max_messages)
    except KeyboardInterrupt:
        publisher.stop()
    finally:
        bus.dispose()
        shutdown_rabbitmq()


@app.command()
def ticker_server(
    tickers: Annotated[list[str], typer.Option("--ticker")] = ["AAPL", "MSFT", "GOOG"],
    interval: Annotated[
        float, typer.Option(help="Seconds between price rounds (default: 1)")
    ] = 1.0,
):
    bus = _start(HutchConfig.TICKER_SERVER)
    server = TickerServer(bus, tickers, interval=interval)
    try:
        server.run()
    except KeyboardInterrupt:
        server.stop()
    finally:
        bus.dispose()
        shutdown_rabbitmq()
