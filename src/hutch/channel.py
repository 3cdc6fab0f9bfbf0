"""
Serialized access to a single AMQP channel.

AMQP channels only support one operation at a time, interleaving calls from
different threads corrupts the protocol framing. ``ChannelReference`` is the
only way hutch touches a channel: every publish, declare and bind goes
through ``execute`` while holding the reference's lock.
"""

import logging
import threading
from typing import Callable, Optional, TypeVar

from amqpstorm import Channel

from hutch.exceptions import ChannelClosedError

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ChannelReference:
    def __init__(self, channel: Channel, name: Optional[str] = None) -> None:
        """
        :param channel: An AMQPStorm channel, owned by this reference from now on.
        :param name: Optional name used in log messages.
        """
        self._channel = channel
        self._name = name or f"channel-{getattr(channel, 'channel_id', id(channel))}"
        # re-entrant so an operation may call execute again on the same thread
        self._lock = threading.RLock()
        self._disposed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_disposed(self) -> bool:
        with self._lock:
            return self._disposed

    def execute(self, operation: Callable[[Channel], R]) -> R:
        """
        Run an operation as the only operation against the channel.

        Blocks until any in-flight operation has finished. Errors raised by the
        operation, including broker errors, propagate unchanged.

        :param operation: callable receiving the underlying channel
        :return: whatever the operation returns
        :raises ChannelClosedError: if the reference has been disposed
        """
        with self._lock:
            if self._disposed:
                raise ChannelClosedError(f"Channel reference {self._name} has been disposed")
            return operation(self._channel)

    def dispose(self) -> None:
        """Close the channel. Safe to call more than once."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            try:
                if self._channel.is_open:
                    self._channel.close()
                    logger.info("Channel %s closed", self._name)
            except Exception as e:
                logger.exception("Error closing channel %s: %s", self._name, e)

    def __enter__(self) -> "ChannelReference":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"ChannelReference(name={self._name!r}, disposed={self._disposed})"
