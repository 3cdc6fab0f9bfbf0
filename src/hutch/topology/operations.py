"""
Topology operations.

A visit is expanded into a short, ordered list of operations. Each operation
is one member of a closed set, applied to a channel by dispatching on its
type. Every operation is idempotent at the broker.
"""

import logging
from dataclasses import dataclass
from typing import Union

from amqpstorm import Channel

from hutch.topology.model import Binding, Exchange, Node, Queue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeclareExchange:
    exchange: Exchange


@dataclass(frozen=True)
class DeclareQueue:
    queue: Queue


@dataclass(frozen=True)
class Bind:
    binding: Binding


TopologyOperation = Union[DeclareExchange, DeclareQueue, Bind]


def declare_operation(node: Node) -> TopologyOperation:
    if isinstance(node, Exchange):
        return DeclareExchange(node)
    if isinstance(node, Queue):
        return DeclareQueue(node)
    raise TypeError(f"Unsupported topology node: {node!r}")


def plan_binding(binding: Binding) -> list[TopologyOperation]:
    """Declare the source, then the destination, then the edge."""
    return [
        declare_operation(binding.source),
        declare_operation(binding.destination),
        Bind(binding),
    ]


def apply_operation(channel: Channel, operation: TopologyOperation) -> None:
    """
    Issue the broker instructions for a single operation.

    Must only be called from inside ``ChannelReference.execute``.
    """
    if isinstance(operation, DeclareExchange):
        exchange = operation.exchange
        channel.exchange.declare(
            exchange=exchange.name,
            exchange_type=exchange.exchange_type.value,
            durable=exchange.durable,
            auto_delete=exchange.auto_delete,
        )
        logger.info(
            "Exchange declared: %s (%s)", exchange.name, exchange.exchange_type.value
        )
    elif isinstance(operation, DeclareQueue):
        queue = operation.queue
        channel.queue.declare(
            queue=queue.name,
            durable=queue.durable,
            exclusive=queue.exclusive,
            auto_delete=queue.auto_delete,
        )
        logger.info("Queue declared: %s", queue.name)
    elif isinstance(operation, Bind):
        _bind(channel, operation.binding)
    else:
        raise TypeError(f"Unsupported topology operation: {operation!r}")


def _bind(channel: Channel, binding: Binding) -> None:
    source = binding.source.name
    destination = binding.destination
    # sorted so repeated visits issue identical instructions
    for routing_key in sorted(binding.routing_keys):
        if isinstance(destination, Queue):
            channel.queue.bind(
                queue=destination.name,
                exchange=source,
                routing_key=routing_key,
            )
            logger.info(
                "Queue %s bound to exchange %s with routing key '%s'",
                destination.name,
                source,
                routing_key,
            )
        else:
            channel.exchange.bind(
                destination=destination.name,
                source=source,
                routing_key=routing_key,
            )
            logger.info(
                "Exchange %s bound to exchange %s with routing key '%s'",
                destination.name,
                source,
                routing_key,
            )
