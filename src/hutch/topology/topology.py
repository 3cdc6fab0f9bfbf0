"""
The topology model.

``Topology`` records every exchange, queue and binding it has declared, and
mutates the broker only through ``visit`` and ``declare``. Each call runs its
whole plan inside a single ``ChannelReference.execute`` so concurrent visits
from different consumers never interleave on the channel.
"""

import logging
import threading
from typing import Iterable, Union

from hutch.channel import ChannelReference
from hutch.topology.model import Binding, Exchange, Node, Queue
from hutch.topology.operations import (
    Bind,
    DeclareExchange,
    DeclareQueue,
    TopologyOperation,
    apply_operation,
    declare_operation,
    plan_binding,
)

logger = logging.getLogger(__name__)


class Topology:
    def __init__(self, channel_reference: ChannelReference) -> None:
        self._channel_reference = channel_reference
        self._exchanges: dict[str, Exchange] = {}
        self._queues: dict[str, Queue] = {}
        self._bindings: set[Binding] = set()
        self._lock = threading.Lock()

    @property
    def exchanges(self) -> frozenset[Exchange]:
        with self._lock:
            return frozenset(self._exchanges.values())

    @property
    def queues(self) -> frozenset[Queue]:
        with self._lock:
            return frozenset(self._queues.values())

    @property
    def bindings(self) -> frozenset[Binding]:
        with self._lock:
            return frozenset(self._bindings)

    def visit(self, binding: Binding) -> list[TopologyOperation]:
        """
        Declare a binding along with both of its endpoints.

        :param binding: the edge to declare
        :return: the operations that were applied, in order
        """
        operations = plan_binding(binding)
        self._apply(operations)
        logger.info(
            "Topology visit bound %s -> %s with %d routing keys",
            binding.source.name,
            binding.destination.name,
            len(binding.routing_keys),
        )
        return operations

    def visit_all(self, bindings: Iterable[Binding]) -> list[TopologyOperation]:
        operations = []
        for binding in bindings:
            operations.extend(self.visit(binding))
        return operations

    def declare(self, node: Union[Exchange, Queue]) -> TopologyOperation:
        """Declare a single exchange or queue."""
        operation = declare_operation(node)
        self._apply([operation])
        return operation

    def _apply(self, operations: list[TopologyOperation]) -> None:
        def run(channel):
            for operation in operations:
                apply_operation(channel, operation)

        self._channel_reference.execute(run)

        # only recorded once the broker accepted every instruction
        with self._lock:
            for operation in operations:
                self._record(operation)

    def _record(self, operation: TopologyOperation) -> None:
        if isinstance(operation, DeclareExchange):
            self._exchanges[operation.exchange.name] = operation.exchange
        elif isinstance(operation, DeclareQueue):
            self._queues[operation.queue.name] = operation.queue
        elif isinstance(operation, Bind):
            self._bindings.add(operation.binding)

    def is_declared(self, node: Node) -> bool:
        with self._lock:
            if isinstance(node, Exchange):
                return self._exchanges.get(node.name) == node
            return node.name in self._queues
