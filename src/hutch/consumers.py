"""
Consumers that reshape the routing topology in response to messages.
"""

import abc
import logging
from typing import Any, Callable, Generic, Iterable, TypeVar

from hutch.messaging.routing import add_routing_key_prefix
from hutch.topology import Binding, Exchange, Node, Topology

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConsumerInterface(abc.ABC, Generic[T]):
    @abc.abstractmethod
    def consume(self, message: T) -> None:
        pass


class TopologyConsumer(ConsumerInterface[T]):
    """
    Derive routing keys from a message, then bind its destination to an exchange.

    Every consumed message results in exactly one visit carrying the full key
    set, which keeps the binding for one client atomic on the channel.
    """

    def __init__(
        self,
        topology: Topology,
        exchange: Exchange,
        derive_keys: Callable[[T], Iterable[str]],
        destination: Callable[[T], Node],
    ) -> None:
        self._topology = topology
        self._exchange = exchange
        self._derive_keys = derive_keys
        self._destination = destination

    def consume(self, message: T) -> None:
        keys = [key for key in self._derive_keys(message) if key]
        destination = self._destination(message)
        if not keys:
            logger.warning(
                "No routing keys derived for %s, not binding %s",
                type(message).__name__,
                destination.name,
            )
            return

        self._topology.visit(Binding(self._exchange, destination, keys))


def prefixed_keys(namespace: str, attribute: str) -> Callable[[Any], list[str]]:
    """
    Build a key deriver that prefixes each value of a message attribute.

    ``prefixed_keys("prices", "tickers")`` maps a message with tickers
    ``["AAPL", "MSFT"]`` to ``["prices.AAPL", "prices.MSFT"]``.
    """

    def derive(message: Any) -> list[str]:
        values = getattr(message, attribute)
        if isinstance(values, str):
            values = [values]
        return [add_routing_key_prefix(str(value), namespace) for value in values]

    return derive
