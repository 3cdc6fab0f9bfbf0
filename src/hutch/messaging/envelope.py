"""
Message envelope and capability markers.

Application messages opt into publish-time metadata by inheriting one or more
of the capability base classes below. The envelope resolves the closed set of
capabilities once, at construction, into explicit optional fields so that the
rest of the publish pipeline never inspects the payload type again.
"""

import abc
import datetime
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

HeaderPopulator = Callable[[dict[str, Any]], None]


class Correlated(abc.ABC):
    """A message carrying a correlation identifier."""

    @property
    @abc.abstractmethod
    def correlation_id(self) -> Any:
        pass


class HasTimeout(abc.ABC):
    """A message the broker should discard once the timeout has elapsed."""

    @property
    @abc.abstractmethod
    def timeout(self) -> datetime.timedelta:
        pass


class HasHeaders(abc.ABC):
    """A message that can populate arbitrary string keyed headers."""

    @abc.abstractmethod
    def populate_headers(self, headers: dict[str, Any]) -> None:
        """
        Add this message's headers to the mapping in place.

        :param headers: mapping to populate, must not have keys removed
        """
        pass


class Transient(abc.ABC):
    """Marker for messages that should not survive a broker restart."""


class HasRoutingKey(abc.ABC):
    """A message that knows its own routing key."""

    @property
    @abc.abstractmethod
    def routing_key(self) -> Optional[str]:
        pass


@dataclass(frozen=True)
class Message(Generic[T]):
    """Immutable payload plus the metadata resolved from its capabilities."""

    payload: T
    correlation_id: Optional[str] = None
    timeout: Optional[datetime.timedelta] = None
    header_populator: Optional[HeaderPopulator] = field(default=None, compare=False)
    transient: bool = False

    @property
    def message_type(self) -> str:
        return type(self.payload).__name__

    @property
    def has_headers(self) -> bool:
        return self.header_populator is not None

    @classmethod
    def create(
        cls,
        payload: T,
        correlation_id: Optional[str] = None,
        timeout: Optional[datetime.timedelta] = None,
        header_populator: Optional[HeaderPopulator] = None,
        transient: Optional[bool] = None,
    ) -> "Message[T]":
        """
        Wrap a payload, reading any capabilities it advertises.

        Explicit keyword arguments take precedence over the payload's own
        capabilities, which lets plain payloads carry metadata too.
        """
        if correlation_id is None and isinstance(payload, Correlated):
            if payload.correlation_id is not None:
                correlation_id = str(payload.correlation_id)

        if timeout is None and isinstance(payload, HasTimeout):
            timeout = payload.timeout

        if header_populator is None and isinstance(payload, HasHeaders):
            header_populator = payload.populate_headers

        if transient is None:
            transient = isinstance(payload, Transient)

        return cls(
            payload=payload,
            correlation_id=correlation_id,
            timeout=timeout,
            header_populator=header_populator,
            transient=transient,
        )
