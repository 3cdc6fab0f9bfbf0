"""
hutch - typed message publishing and runtime topology for RabbitMQ.

Public API:
    - Bus: creates publishers, subscribers and owns the shared topology
    - ChannelReference: serialized access to one AMQP channel
    - Publisher, ConfirmingPublisher: publish typed messages to an exchange
    - Topology, Exchange, Queue, Binding: the routing graph
    - TopologyConsumer: derive routing keys from a message, then bind
"""

from hutch.bus import Bus
from hutch.channel import ChannelReference
from hutch.consumers import ConsumerInterface, TopologyConsumer, prefixed_keys
from hutch.exceptions import (
    ChannelClosedError,
    HutchException,
    RoutingKeyError,
    SerializationError,
)
from hutch.messaging import (
    ConfirmingPublisher,
    Message,
    Publisher,
    PublishReceipt,
)
from hutch.topology import Binding, Exchange, ExchangeType, Queue, Topology

__all__ = [
    "Bus",
    "ChannelReference",
    # Consumers
    "ConsumerInterface",
    "TopologyConsumer",
    "prefixed_keys",
    # Errors
    "ChannelClosedError",
    "HutchException",
    "RoutingKeyError",
    "SerializationError",
    # Messaging
    "ConfirmingPublisher",
    "Message",
    "Publisher",
    "PublishReceipt",
    # Topology
    "Binding",
    "Exchange",
    "ExchangeType",
    "Queue",
    "Topology",
]
