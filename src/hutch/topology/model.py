"""
Topology entities.

Exchanges and queues are the nodes of the routing graph, bindings are the
directed edges between them. All entities are immutable and hashable so they
can be recorded in sets.
"""

import enum
from dataclasses import dataclass, field
from typing import Iterable, Union


class ExchangeType(enum.Enum):
    TOPIC = "topic"
    DIRECT = "direct"
    FANOUT = "fanout"
    HEADERS = "headers"


@dataclass(frozen=True)
class Exchange:
    name: str
    exchange_type: ExchangeType = ExchangeType.TOPIC
    durable: bool = field(default=True, compare=False)
    auto_delete: bool = field(default=False, compare=False)

    def __post_init__(self):
        if isinstance(self.exchange_type, str):
            object.__setattr__(self, "exchange_type", ExchangeType(self.exchange_type))


@dataclass(frozen=True)
class Queue:
    # TODO - server named queues, declare returns the generated name
    name: str
    durable: bool = field(default=True, compare=False)
    exclusive: bool = field(default=False, compare=False)
    auto_delete: bool = field(default=False, compare=False)

    @classmethod
    def private(cls, name: str) -> "Queue":
        """A per-consumer queue removed once its consumer goes away."""
        return cls(name=name, durable=False, exclusive=True, auto_delete=True)


Node = Union[Exchange, Queue]


@dataclass(frozen=True)
class Binding:
    source: Exchange
    destination: Node
    routing_keys: frozenset[str]

    def __init__(self, source: Exchange, destination: Node, routing_keys: Iterable[str]):
        if isinstance(routing_keys, str):
            routing_keys = [routing_keys]
        object.__setattr__(self, "source", source)
        object.__setattr__(self, "destination", destination)
        object.__setattr__(self, "routing_keys", frozenset(routing_keys))
