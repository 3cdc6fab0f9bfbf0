"""
Header strategies.

A header strategy is only consulted for messages that declare the
has-headers capability. Strategies add keys to the mapping in place and never
remove keys they did not add.
"""

import abc
from typing import Any, Mapping

from hutch.messaging.envelope import Message


class HeadersStrategy(abc.ABC):
    @abc.abstractmethod
    def populate(self, message: Message, headers: dict[str, Any]) -> None:
        """
        Populate headers for a message.

        :param message: the wrapped message being published
        :param headers: mapping to add headers to
        """
        pass


class DefaultHeadersStrategy(HeadersStrategy):
    """Delegates to the message's own header population."""

    def populate(self, message: Message, headers: dict[str, Any]) -> None:
        if message.header_populator is not None:
            message.header_populator(headers)


class StaticHeadersStrategy(DefaultHeadersStrategy):
    """Adds a fixed set of headers after the message has populated its own."""

    def __init__(self, headers: Mapping[str, Any]) -> None:
        self._headers = dict(headers)

    def populate(self, message: Message, headers: dict[str, Any]) -> None:
        super().populate(message, headers)
        for key, value in self._headers.items():
            headers.setdefault(key, value)
