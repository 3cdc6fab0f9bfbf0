"""
Stock ticker sample.

Clients announce themselves with a ConnectMessage naming the tickers they want.
The server binds each client's exchange to the shared prices exchange for just
those tickers, then keeps publishing prices for every ticker it knows about.
"""

import datetime
import logging
import random
import threading
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from hutch.bus import Bus
from hutch.config import HutchConfig
from hutch.consumers import TopologyConsumer, prefixed_keys
from hutch.messaging.envelope import HasRoutingKey, HasTimeout, Transient
from hutch.messaging.routing import add_routing_key_prefix
from hutch.topology import Binding, Exchange, ExchangeType, Queue, Topology

logger = logging.getLogger(__name__)


class ConnectMessage(BaseModel):
    client_id: str
    queue_name: str
    tickers: list[str] = Field(default_factory=list)


class PriceMessage(BaseModel, HasRoutingKey, HasTimeout, Transient):
    ticker: str
    price: float

    @property
    def routing_key(self) -> str:
        return add_routing_key_prefix(self.ticker, HutchConfig.PRICES_NAMESPACE)

    @property
    def timeout(self) -> datetime.timedelta:
        # stale prices are worthless
        return datetime.timedelta(seconds=5)


def client_exchange(message: ConnectMessage) -> Exchange:
    return Exchange(message.queue_name, ExchangeType.TOPIC)


class ConnectMessageConsumer(TopologyConsumer[ConnectMessage]):
    def __init__(self, topology: Topology, exchange: Exchange) -> None:
        super().__init__(
            topology,
            exchange,
            derive_keys=prefixed_keys(HutchConfig.PRICES_NAMESPACE, "tickers"),
            destination=client_exchange,
        )

    def consume(self, message: ConnectMessage) -> None:
        logger.info("Client connected: %s on %s", message.client_id, message.queue_name)
        super().consume(message)


class TickerServer:
    def __init__(
        self,
        bus: Bus,
        tickers: Iterable[str],
        interval: float = 1.0,
        seed: Optional[int] = None,
    ) -> None:
        self._bus = bus
        self._tickers = list(tickers)
        self._interval = interval
        self._random = random.Random(seed)
        self._prices = {ticker: 100.0 for ticker in self._tickers}
        self._stop_event = threading.Event()

    def next_prices(self) -> list[PriceMessage]:
        messages = []
        for ticker in self._tickers:
            price = max(0.01, self._prices[ticker] * (1 + self._random.uniform(-0.01, 0.01)))
            self._prices[ticker] = price
            messages.append(PriceMessage(ticker=ticker, price=round(price, 2)))
        return messages

    def run(self, max_rounds: Optional[int] = None) -> None:
        self._stop_event.clear()
        prices_exchange = Exchange(HutchConfig.PRICES_EXCHANGE, ExchangeType.TOPIC)
        connect_exchange = Exchange(HutchConfig.CONNECT_EXCHANGE, ExchangeType.DIRECT)
        connect_queue = Queue(HutchConfig.CONNECT_QUEUE)

        publisher = self._bus.create_publisher(prices_exchange)
        self._bus.subscribe(
            ConnectMessage,
            ConnectMessageConsumer(self._bus.topology, publisher.exchange),
            connect_queue,
            bindings=[Binding(connect_exchange, connect_queue, [connect_queue.name])],
        )

        rounds = 0
        try:
            while not self._stop_event.is_set():
                if max_rounds is not None and rounds >= max_rounds:
                    break
                for message in self.next_prices():
                    publisher.publish(message)
                rounds += 1
                self._stop_event.wait(self._interval)
        finally:
            logger.info("Ticker server published %d prices", publisher.published_count)
            publisher.dispose()

    def stop(self) -> None:
        self._stop_event.set()
