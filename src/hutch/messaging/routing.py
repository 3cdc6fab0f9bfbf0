"""
Routing strategies.

A routing strategy maps a message envelope to the routing key it is published
with, and optionally supplies a reply-to address for request/reply setups.
"""

import abc
import enum
import logging
import string
from typing import Any, Callable, Optional, Union

from hutch.exceptions import RoutingKeyError
from hutch.messaging.envelope import HasRoutingKey, Message

logger = logging.getLogger(__name__)

# routing key that matches everything on a topic exchange
ROUTE_ALL = "#"


class RoutingStrategy(abc.ABC):
    """Maps a message to a routing key."""

    @abc.abstractmethod
    def route(self, message: Message) -> Optional[str]:
        """
        Resolve the routing key for a message.

        :param message: the wrapped message being published
        :return: the routing key, or None when it cannot be resolved
        """
        pass

    def reply_to(self) -> Optional[str]:
        return None


class StaticRouter(RoutingStrategy):
    """Routes every message with the same key."""

    def __init__(self, routing_key: str, reply_to: Optional[str] = None) -> None:
        self._routing_key = routing_key
        self._reply_to = reply_to

    def route(self, message: Message) -> Optional[str]:
        return self._routing_key

    def reply_to(self) -> Optional[str]:
        return self._reply_to


class DefaultRouter(RoutingStrategy):
    """Uses the message's own routing key when it has one, otherwise routes to all."""

    def route(self, message: Message) -> Optional[str]:
        if isinstance(message.payload, HasRoutingKey):
            return message.payload.routing_key
        return ROUTE_ALL


class CallableRouter(RoutingStrategy):
    """Derives the routing key from an arbitrary function of the payload."""

    def __init__(
        self, fn: Callable[[Any], Optional[str]], reply_to: Optional[str] = None
    ) -> None:
        self._fn = fn
        self._reply_to = reply_to

    def route(self, message: Message) -> Optional[str]:
        return self._fn(message.payload)

    def reply_to(self) -> Optional[str]:
        return self._reply_to


class TemplateRouter(RoutingStrategy):
    """
    Formats a routing key template with the payload's attributes.

    ``TemplateRouter("prices.{message_type}", transform=str.lower)`` routes a
    payload whose ``message_type`` is ``Slow`` to ``prices.slow``.
    """

    def __init__(
        self,
        template: str,
        transform: Optional[Callable[[str], str]] = None,
        reply_to: Optional[str] = None,
    ) -> None:
        self._template = template
        self._transform = transform
        self._reply_to = reply_to
        self._fields = []
        for _, name, _, _ in string.Formatter().parse(template):
            if name is None:
                continue
            if not name.isidentifier():
                raise ValueError(
                    f"Routing template field {name!r} must name a single attribute"
                )
            self._fields.append(name)

    def route(self, message: Message) -> Optional[str]:
        values = {}
        for name in self._fields:
            value = getattr(message.payload, name, None)
            if value is None:
                logger.debug(
                    "Routing template field %s missing on %s", name, message.message_type
                )
                return None
            if isinstance(value, enum.Enum):
                value = value.value
            # numbers stay numbers so format specs like {id:03d} apply
            if isinstance(value, str) and self._transform is not None:
                value = self._transform(value)
            values[name] = value
        try:
            return self._template.format(**values)
        except (ValueError, TypeError) as e:
            raise RoutingKeyError(
                message.message_type,
                f"Routing template {self._template!r} does not fit {message.message_type}: {e}",
            ) from e

    def reply_to(self) -> Optional[str]:
        return self._reply_to


def resolve_router(
    router: Union[RoutingStrategy, type[RoutingStrategy]],
) -> RoutingStrategy:
    """
    Accept either a routing strategy instance or a strategy class.

    Classes are instantiated without arguments, which allows a router type to
    be bound when a publisher is constructed.
    """
    if isinstance(router, type):
        if not issubclass(router, RoutingStrategy):
            raise TypeError(f"{router.__name__} is not a RoutingStrategy")
        return router()
    if not isinstance(router, RoutingStrategy):
        raise TypeError(f"{router!r} is not a RoutingStrategy")
    return router


def add_routing_key_prefix(routing_key: str, prefix: Optional[str]) -> str:
    """
    Put ``prefix`` in front of the key as its own dot separated segment.

    An empty key or prefix leaves the key unchanged.
    """
    if not prefix or not routing_key:
        return routing_key
    return f"{prefix.rstrip('.')}.{routing_key.lstrip('.')}"


def add_routing_key_suffix(routing_key: str, suffix: Optional[str]) -> str:
    """
    Append ``suffix`` to the key as its own dot separated segment.

    An empty key or suffix leaves the key unchanged.
    """
    if not suffix or not routing_key:
        return routing_key
    return f"{routing_key.rstrip('.')}.{suffix.lstrip('.')}"
