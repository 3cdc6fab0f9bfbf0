"""
Publish-time property construction.

Turns a message envelope, its routing strategy and the serializer's content
type into the AMQP basic properties sent alongside the body.
"""

import datetime
import math
from dataclasses import dataclass
from typing import Any, Optional

from hutch.config import HutchConfig
from hutch.messaging.envelope import Message
from hutch.messaging.headers import DefaultHeadersStrategy, HeadersStrategy
from hutch.messaging.routing import RoutingStrategy


@dataclass(frozen=True)
class PublishProperties:
    content_type: str
    correlation_id: Optional[str] = None
    expiration: Optional[str] = None
    headers: Optional[dict[str, Any]] = None
    persistent: bool = True
    reply_to: Optional[str] = None

    @property
    def delivery_mode(self) -> int:
        if self.persistent:
            return HutchConfig.DELIVERY_MODE_PERSISTENT
        return HutchConfig.DELIVERY_MODE_TRANSIENT

    def to_amqp(self) -> dict[str, Any]:
        """Render as the properties dict accepted by amqpstorm's basic.publish."""
        properties: dict[str, Any] = {
            "content_type": self.content_type,
            "delivery_mode": self.delivery_mode,
        }
        if self.correlation_id is not None:
            properties["correlation_id"] = self.correlation_id
        if self.expiration is not None:
            properties["expiration"] = self.expiration
        if self.headers is not None:
            properties["headers"] = dict(self.headers)
        if self.reply_to:
            properties["reply_to"] = self.reply_to
        return properties


def format_expiration(timeout: datetime.timedelta) -> str:
    """
    Render a timeout as an invariant decimal millisecond string.

    The broker only accepts whole milliseconds. Fractions are rounded up so a
    positive timeout never renders as "0".

    >>> format_expiration(datetime.timedelta(seconds=2.5))
    '2500'
    """
    if timeout < datetime.timedelta(0):
        raise ValueError(f"Message timeout must not be negative: {timeout}")
    milliseconds = math.ceil(timeout / datetime.timedelta(milliseconds=1))
    return str(milliseconds)


def build_properties(
    message: Message,
    router: RoutingStrategy,
    content_type: str,
    headers_strategy: Optional[HeadersStrategy] = None,
) -> PublishProperties:
    """
    Build the full set of publish properties for a message.

    :param message: the wrapped message, left unmodified
    :param router: routing strategy supplying reply-to
    :param content_type: the active serializer's content type
    :param headers_strategy: used only when the message has headers
    :return: properties for the publish call
    """
    headers = None
    if message.has_headers:
        headers = {}
        (headers_strategy or DefaultHeadersStrategy()).populate(message, headers)

    expiration = None
    if message.timeout is not None:
        expiration = format_expiration(message.timeout)

    return PublishProperties(
        content_type=content_type,
        correlation_id=message.correlation_id,
        expiration=expiration,
        headers=headers,
        persistent=not message.transient,
        reply_to=router.reply_to() or None,
    )
