"""
Shared subscriptions sample.

Publishes a stream of messages, every fifth one slow and the rest fast, routed
by message type so competing consumers can share one of the two subscriptions.
"""

import enum
import logging
import threading
from typing import Optional

from pydantic import BaseModel

from hutch.bus import Bus
from hutch.config import HutchConfig
from hutch.messaging.routing import TemplateRouter, add_routing_key_suffix

logger = logging.getLogger(__name__)


class MessageType(enum.Enum):
    SLOW = "Slow"
    FAST = "Fast"


class SharedMessage(BaseModel):
    index: int
    message_type: MessageType


class SharedMessageRouter(TemplateRouter):
    def __init__(self) -> None:
        super().__init__(
            add_routing_key_suffix(HutchConfig.SHARED_NAMESPACE, "{message_type}"),
            transform=str.lower,
        )


class MessagePublisher:
    def __init__(self, bus: Bus, interval: float = 1.0) -> None:
        self._bus = bus
        self._interval = interval
        self._stop_event = threading.Event()

    @staticmethod
    def build_message(index: int) -> SharedMessage:
        message_type = MessageType.SLOW if index % 5 == 0 else MessageType.FAST
        return SharedMessage(index=index, message_type=message_type)

    def run(self, max_messages: Optional[int] = None) -> int:
        """
        Publish until stopped, or until max_messages have been sent.

        :return: number of messages published
        """
        self._stop_event.clear()
        index = 0
        with self._bus.create_publisher(
            HutchConfig.SHARED_EXCHANGE, router=SharedMessageRouter
        ) as publisher:
            while not self._stop_event.is_set():
                if max_messages is not None and index >= max_messages:
                    break
                publisher.publish(self.build_message(index))
                index += 1
                self._stop_event.wait(self._interval)

            logger.info("Published %d shared messages", publisher.published_count)
        return index

    def stop(self) -> None:
        self._stop_event.set()
