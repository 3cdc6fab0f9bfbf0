"""
Routing topology: exchanges, queues, bindings and the visit protocol used to
mutate them at runtime.
"""

from hutch.topology.model import Binding, Exchange, ExchangeType, Node, Queue
from hutch.topology.operations import (
    Bind,
    DeclareExchange,
    DeclareQueue,
    TopologyOperation,
    apply_operation,
    plan_binding,
)
from hutch.topology.topology import Topology

__all__ = [
    # Entities
    "Binding",
    "Exchange",
    "ExchangeType",
    "Node",
    "Queue",
    # Operations
    "Bind",
    "DeclareExchange",
    "DeclareQueue",
    "TopologyOperation",
    "apply_operation",
    "plan_binding",
    # Model
    "Topology",
]
