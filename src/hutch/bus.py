"""
Entry point tying a broker connection to publishers, subscribers and the
shared topology.
"""

import logging
import threading
from typing import Callable, Iterable, Optional, TypeVar, Union

from amqpstorm import Connection

from hutch.channel import ChannelReference
from hutch.consumers import ConsumerInterface
from hutch.exceptions import ChannelClosedError
from hutch.messaging.headers import HeadersStrategy
from hutch.messaging.publisher import ConfirmingPublisher, Publisher
from hutch.messaging.routing import DefaultRouter, RoutingStrategy
from hutch.messaging.serializer import JsonMessageSerializer, MessageSerializer
from hutch.subscriber import Subscriber
from hutch.topology import Binding, Exchange, Queue, Topology

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class Bus:
    def __init__(
        self, connection: Connection, serializer: Optional[MessageSerializer] = None
    ) -> None:
        """
        :param connection: An AMQPStorm connection to the RabbitMQ server.
        :param serializer: default serializer for publishers and subscribers
        """
        self._connection = connection
        self._serializer = serializer or JsonMessageSerializer()
        self._lock = threading.RLock()
        self._topology: Optional[Topology] = None
        self._publishers: list[Publisher] = []
        self._subscribers: list[Subscriber] = []
        self._channel_references: list[ChannelReference] = []
        self._disposed = False

    def channel_reference(self, name: Optional[str] = None) -> ChannelReference:
        """Open a new channel wrapped in its own serialized reference."""
        with self._lock:
            self._check_open()
            reference = ChannelReference(self._connection.channel(), name=name)
            self._channel_references.append(reference)
        logger.debug("Opened %s", reference)
        return reference

    @property
    def topology(self) -> Topology:
        with self._lock:
            if self._topology is None:
                self._topology = Topology(self.channel_reference(name="topology"))
            return self._topology

    def modify_topology(self, modification: Callable[[Topology], R]) -> R:
        return modification(self.topology)

    def create_publisher(
        self,
        exchange: Union[Exchange, str],
        router: Union[RoutingStrategy, type[RoutingStrategy]] = DefaultRouter,
        serializer: Optional[MessageSerializer] = None,
        headers_strategy: Optional[HeadersStrategy] = None,
        confirm: bool = False,
        declare_exchange: bool = True,
    ) -> Publisher:
        """
        Create and start a publisher on a dedicated channel.

        :param exchange: exchange, or exchange name for a topic exchange
        :param router: routing strategy or strategy class
        :param serializer: overrides the bus serializer
        :param headers_strategy: populates headers for messages that have them
        :param confirm: wait for broker acknowledgement of each publish
        :param declare_exchange: declare the exchange before returning
        """
        if isinstance(exchange, str):
            exchange = Exchange(exchange)
        if declare_exchange:
            self.topology.declare(exchange)

        publisher_class = ConfirmingPublisher if confirm else Publisher
        publisher = publisher_class(
            self.channel_reference(name=f"publisher-{exchange.name}"),
            serializer or self._serializer,
            exchange,
            router,
            headers_strategy,
        )
        publisher.start()

        with self._lock:
            self._publishers.append(publisher)
        return publisher

    def subscribe(
        self,
        message_type: type[T],
        consumer: ConsumerInterface[T],
        queue_: Union[Queue, str],
        bindings: Iterable[Binding] = (),
        serializer: Optional[MessageSerializer] = None,
        run_thread: bool = True,
    ) -> Subscriber[T]:
        if isinstance(queue_, str):
            queue_ = Queue(queue_)
        subscriber = Subscriber(
            self.channel_reference(name=f"subscriber-{queue_.name}"),
            self.topology,
            serializer or self._serializer,
            message_type,
            consumer,
            queue_,
            bindings,
        )
        subscriber.start(run_thread=run_thread)

        with self._lock:
            self._subscribers.append(subscriber)
        return subscriber

    def _check_open(self) -> None:
        if self._disposed:
            raise ChannelClosedError("Bus has been disposed")

    def dispose(self) -> None:
        """Dispose every subscriber, publisher and channel created by the bus."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            subscribers = list(self._subscribers)
            publishers = list(self._publishers)
            references = list(self._channel_references)

        logger.info(
            "Disposing bus with %d publishers and %d subscribers",
            len(publishers),
            len(subscribers),
        )
        for subscriber in subscribers:
            subscriber.shutdown()
        for publisher in publishers:
            publisher.dispose()
        for reference in references:
            reference.dispose()

    def __enter__(self) -> "Bus":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.dispose()
