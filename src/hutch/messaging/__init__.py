"""
Typed message publishing.

Public API:
    - Message and the capability markers: envelope for a payload
    - RoutingStrategy and its implementations: resolve routing keys
    - HeadersStrategy and its implementations: populate headers
    - PublishProperties, build_properties: publish-time AMQP properties
    - MessageSerializer, JsonMessageSerializer: payload serialization
    - Publisher, ConfirmingPublisher: publish to an exchange
"""

from hutch.messaging.envelope import (
    Correlated,
    HasHeaders,
    HasRoutingKey,
    HasTimeout,
    Message,
    Transient,
)
from hutch.messaging.headers import (
    DefaultHeadersStrategy,
    HeadersStrategy,
    StaticHeadersStrategy,
)
from hutch.messaging.properties import (
    PublishProperties,
    build_properties,
    format_expiration,
)
from hutch.messaging.publisher import (
    ConfirmedReceipt,
    ConfirmingPublisher,
    NullReceipt,
    Publisher,
    PublisherInterface,
    PublishReceipt,
)
from hutch.messaging.routing import (
    CallableRouter,
    DefaultRouter,
    RoutingStrategy,
    StaticRouter,
    TemplateRouter,
    add_routing_key_prefix,
    add_routing_key_suffix,
    resolve_router,
)
from hutch.messaging.serializer import JsonMessageSerializer, MessageSerializer

__all__ = [
    # Envelope
    "Correlated",
    "HasHeaders",
    "HasRoutingKey",
    "HasTimeout",
    "Message",
    "Transient",
    # Headers
    "DefaultHeadersStrategy",
    "HeadersStrategy",
    "StaticHeadersStrategy",
    # Properties
    "PublishProperties",
    "build_properties",
    "format_expiration",
    # Publishers
    "ConfirmedReceipt",
    "ConfirmingPublisher",
    "NullReceipt",
    "Publisher",
    "PublisherInterface",
    "PublishReceipt",
    # Routing
    "CallableRouter",
    "DefaultRouter",
    "RoutingStrategy",
    "StaticRouter",
    "TemplateRouter",
    "add_routing_key_prefix",
    "add_routing_key_suffix",
    "resolve_router",
    # Serialization
    "JsonMessageSerializer",
    "MessageSerializer",
]
