"""
Typed message publishers.

A publisher is bound to one exchange and one channel reference for its whole
lifetime. ``publish`` wraps, serializes and routes the message before touching
the channel, so a serialization or routing failure never reaches the broker.
"""

import abc
import logging
import threading
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from amqpstorm import Channel

from hutch.channel import ChannelReference
from hutch.exceptions import ChannelClosedError, RoutingKeyError
from hutch.messaging.envelope import Message
from hutch.messaging.headers import DefaultHeadersStrategy, HeadersStrategy
from hutch.messaging.properties import PublishProperties, build_properties
from hutch.messaging.routing import RoutingStrategy, resolve_router
from hutch.messaging.serializer import MessageSerializer
from hutch.topology import Exchange

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PublishReceipt(abc.ABC):
    """Token handed back to the caller for every successful publish."""


class NullReceipt(PublishReceipt):
    """Accepted by the channel, no broker confirmation requested."""

    INSTANCE: "NullReceipt"

    def __repr__(self) -> str:
        return "NullReceipt()"


NullReceipt.INSTANCE = NullReceipt()


@dataclass(frozen=True)
class ConfirmedReceipt(PublishReceipt):
    sequence_number: int
    acknowledged: bool


class PublisherInterface(abc.ABC, Generic[T]):
    def start(self) -> None:
        """Hook for publishers that need broker-side setup before first use."""

    @abc.abstractmethod
    def publish(self, message: T) -> PublishReceipt:
        pass

    @abc.abstractmethod
    def dispose(self) -> None:
        """
        Release the publisher's channel.
        Calling this more than once has no further effect.
        """
        pass

    def __enter__(self) -> "PublisherInterface[T]":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.dispose()


class Publisher(PublisherInterface[T]):
    def __init__(
        self,
        channel_reference: ChannelReference,
        serializer: MessageSerializer,
        exchange: Exchange,
        router: Union[RoutingStrategy, type[RoutingStrategy]],
        headers_strategy: Optional[HeadersStrategy] = None,
    ) -> None:
        """
        :param channel_reference: channel used for every publish, owned by the publisher
        :param serializer: converts message payloads to bytes
        :param exchange: exchange all messages are published to
        :param router: routing strategy, or a routing strategy class to instantiate
        :param headers_strategy: populates headers for messages that have them
        """
        self._channel_reference = channel_reference
        self._serializer = serializer
        self._exchange = exchange
        self._router = resolve_router(router)
        self._headers_strategy = headers_strategy or DefaultHeadersStrategy()

        self._lock = threading.Lock()
        self._published_count = 0
        self._disposed = False

        logger.info(
            "%s initialized for exchange %s with router %s",
            self.__class__.__name__,
            self._exchange.name,
            self._router.__class__.__name__,
        )

    @property
    def exchange(self) -> Exchange:
        return self._exchange

    @property
    def channel_reference(self) -> ChannelReference:
        return self._channel_reference

    @property
    def router(self) -> RoutingStrategy:
        return self._router

    @property
    def published_count(self) -> int:
        with self._lock:
            return self._published_count

    @property
    def is_disposed(self) -> bool:
        with self._lock:
            return self._disposed

    def publish(self, message: T) -> PublishReceipt:
        """
        Publish a single message to the bound exchange.

        :param message: the application message
        :return: receipt for the publish
        :raises ChannelClosedError: if the publisher has been disposed
        :raises SerializationError: if the serializer rejects the message
        :raises RoutingKeyError: if no routing key could be resolved
        """
        if self.is_disposed:
            raise ChannelClosedError(
                f"{self.__class__.__name__} for exchange {self._exchange.name} has been disposed"
            )

        wrapped = Message.create(message)
        body = self._serializer.serialize(wrapped)
        routing_key = self._router.route(wrapped)
        if not routing_key:
            logger.error(
                "No routing key resolved for %s using %s",
                wrapped.message_type,
                self._router.__class__.__name__,
            )
            raise RoutingKeyError(wrapped.message_type)

        def send(channel: Channel) -> PublishReceipt:
            properties = self.create_properties(wrapped)
            return self.publish_with_receipt(
                wrapped, channel, routing_key, properties, body
            )

        receipt = self._channel_reference.execute(send)

        with self._lock:
            self._published_count += 1

        logger.debug(
            "Message %s published to exchange %s with routing key %s",
            wrapped.message_type,
            self._exchange.name,
            routing_key,
        )
        return receipt

    def create_properties(self, message: Message[T]) -> PublishProperties:
        return build_properties(
            message,
            self._router,
            self._serializer.content_type,
            self._headers_strategy,
        )

    def publish_with_receipt(
        self,
        message: Message[T],
        channel: Channel,
        routing_key: str,
        properties: PublishProperties,
        body: bytes,
    ) -> PublishReceipt:
        """
        Invoke the broker publish primitive. Runs inside the channel reference.

        Subclasses override this to return richer receipts.
        """
        channel.basic.publish(
            body=body,
            routing_key=routing_key,
            exchange=self._exchange.name,
            properties=properties.to_amqp(),
        )
        return NullReceipt.INSTANCE

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True

        logger.info(
            "Shutting down %s for exchange %s after %d messages",
            self.__class__.__name__,
            self._exchange.name,
            self.published_count,
        )
        self._channel_reference.dispose()


class ConfirmingPublisher(Publisher[T]):
    """
    Publisher that waits for broker acknowledgement of each message.

    ``start`` must be called before the first publish to switch the channel
    into confirm mode.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._sequence_number = 0

    def start(self) -> None:
        self._channel_reference.execute(lambda channel: channel.confirm_deliveries())
        logger.info(
            "Publisher confirms enabled on %s", self._channel_reference.name
        )

    def publish_with_receipt(
        self,
        message: Message[T],
        channel: Channel,
        routing_key: str,
        properties: PublishProperties,
        body: bytes,
    ) -> PublishReceipt:
        # with confirms enabled amqpstorm blocks until the broker acks or nacks
        acknowledged = channel.basic.publish(
            body=body,
            routing_key=routing_key,
            exchange=self._exchange.name,
            properties=properties.to_amqp(),
        )
        # sequence only moves inside execute, which is already serialized
        self._sequence_number += 1
        return ConfirmedReceipt(
            sequence_number=self._sequence_number,
            acknowledged=bool(acknowledged),
        )
