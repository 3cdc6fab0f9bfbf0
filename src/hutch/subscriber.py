"""
RabbitMQ subscriber.

Consumes from a single queue on a dedicated channel and dispatches decoded
messages to a consumer. Channel reads, acks and rejects all go through the
subscriber's channel reference; the consumer itself runs outside of it, so a
handler is free to publish or modify the topology.
"""

import logging
import queue
import threading
import time
from typing import Generic, Iterable, Optional, TypeVar

from amqpstorm import AMQPConnectionError, Message as AMQPMessage

from hutch.channel import ChannelReference
from hutch.consumers import ConsumerInterface
from hutch.exceptions import ChannelClosedError, SerializationError
from hutch.messaging.serializer import MessageSerializer
from hutch.topology import Binding, Queue, Topology

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscriber(Generic[T]):
    def __init__(
        self,
        channel_reference: ChannelReference,
        topology: Topology,
        serializer: MessageSerializer,
        message_type: type[T],
        consumer: ConsumerInterface[T],
        queue_: Queue,
        bindings: Iterable[Binding] = (),
        poll_interval: float = 0.1,
    ) -> None:
        """
        :param channel_reference: dedicated channel for consuming, owned by the subscriber
        :param topology: used to declare the queue and its bindings
        :param serializer: decodes message bodies
        :param message_type: type every message body is decoded to
        :param consumer: receives each decoded message
        :param queue_: queue to consume from
        :param bindings: bindings declared before consuming starts
        :param poll_interval: seconds to wait between polls when idle
        """
        self._channel_reference = channel_reference
        self._topology = topology
        self._serializer = serializer
        self._message_type = message_type
        self._consumer = consumer
        self._queue = queue_
        self._bindings = list(bindings)
        self._poll_interval = poll_interval

        self._internal_message_queue: "queue.Queue[AMQPMessage]" = queue.Queue()
        self._consumer_tag: Optional[str] = None
        self._consumer_thread: Optional[threading.Thread] = None
        self._is_shutting_down = threading.Event()

    @property
    def queue(self) -> Queue:
        return self._queue

    def start(self, run_thread: bool = True) -> None:
        """
        Declare the queue and bindings, then register as a consumer.

        :param run_thread: start the background consuming thread
        """
        self._topology.declare(self._queue)
        self._topology.visit_all(self._bindings)

        def register(channel):
            # Set QoS to ensure fair dispatching of messages
            channel.basic.qos(prefetch_count=1)
            return channel.basic.consume(
                callback=self._message_handler,
                queue=self._queue.name,
            )

        self._consumer_tag = self._channel_reference.execute(register)
        logger.info(
            "Subscriber consuming %s from queue %s",
            self._message_type.__name__,
            self._queue.name,
        )

        if run_thread:
            self._consumer_thread = threading.Thread(
                target=self._consuming_loop,
                name=f"hutch-subscriber-{self._queue.name}",
                daemon=True,
            )
            self._consumer_thread.start()

    def _message_handler(self, message: AMQPMessage) -> None:
        """
        Write messages to internal queue for dispatch in `drain`.
        """
        self._internal_message_queue.put(message)

    def _consuming_loop(self) -> None:
        while not self._is_shutting_down.is_set():
            try:
                if self.drain() == 0:
                    time.sleep(self._poll_interval)
            except ChannelClosedError:
                break
            except AMQPConnectionError as e:
                logger.warning("Connection error in consuming loop: %s", e)
                time.sleep(1)
            except Exception as e:
                logger.exception("Unexpected error in consuming loop: %s", e)
                time.sleep(1)

    def drain(self) -> int:
        """
        Read pending deliveries and dispatch them.

        :return: number of messages dispatched
        """
        self._channel_reference.execute(
            lambda channel: channel.process_data_events(to_tuple=False)
        )

        dispatched = 0
        while True:
            try:
                # don't block - will return immediately if no messages are available
                delivery = self._internal_message_queue.get(block=False)
            except queue.Empty:
                break
            self._dispatch(delivery)
            dispatched += 1
        return dispatched

    def _dispatch(self, delivery: AMQPMessage) -> None:
        try:
            message = self._serializer.deserialize(delivery.body, self._message_type)
        except SerializationError as e:
            logger.error("Discarding undecodable message on %s: %s", self._queue.name, e)
            self._channel_reference.execute(lambda _: delivery.reject(requeue=False))
            return

        try:
            self._consumer.consume(message)
        except Exception as e:
            logger.exception(
                "Error handling %s from %s: %s", self._message_type.__name__, self._queue.name, e
            )
            self._channel_reference.execute(lambda _: delivery.reject(requeue=False))
            return

        self._channel_reference.execute(lambda _: delivery.ack())
        logger.debug("Message received and acknowledged: %s", delivery.delivery_tag)

    def shutdown(self) -> None:
        """
        Shutdown the subscriber by cancelling the consumer and closing the channel.
        """
        logger.info("Shutting down subscriber for queue %s...", self._queue.name)
        self._is_shutting_down.set()

        if self._consumer_thread and self._consumer_thread.is_alive():
            self._consumer_thread.join(timeout=5.0)

        if self._consumer_tag and not self._channel_reference.is_disposed:
            try:
                self._channel_reference.execute(
                    lambda channel: channel.basic.cancel(self._consumer_tag)
                )
            except Exception as e:
                logger.debug("Error cancelling consumer: %s", e)

        self._channel_reference.dispose()
        logger.info("Subscriber shutdown complete")
