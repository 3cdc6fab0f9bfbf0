"""
Tests for the topology model and the visit protocol.
"""

import threading
import unittest
from unittest.mock import call

from amqpstorm import AMQPChannelError

from hutch.channel import ChannelReference
from hutch.exceptions import ChannelClosedError
from hutch.topology import (
    Bind,
    Binding,
    DeclareExchange,
    DeclareQueue,
    Exchange,
    ExchangeType,
    Queue,
    Topology,
    apply_operation,
    plan_binding,
)
from tests.conftest import make_mock_channel


class TestEntities(unittest.TestCase):
    def test_exchange_identity_is_name_and_type(self):
        self.assertEqual(Exchange("prices"), Exchange("prices", durable=False))
        self.assertNotEqual(Exchange("prices"), Exchange("prices", ExchangeType.FANOUT))

    def test_exchange_type_from_string(self):
        self.assertIs(Exchange("prices", "direct").exchange_type, ExchangeType.DIRECT)

    def test_private_queue(self):
        queue = Queue.private("queue-C1")

        self.assertTrue(queue.exclusive)
        self.assertTrue(queue.auto_delete)
        self.assertFalse(queue.durable)

    def test_binding_keys_are_a_set(self):
        binding = Binding(Exchange("a"), Queue("b"), ["x", "y", "x"])

        self.assertEqual(binding.routing_keys, frozenset({"x", "y"}))
        self.assertEqual(binding, Binding(Exchange("a"), Queue("b"), ["y", "x"]))
        self.assertEqual(hash(binding), hash(Binding(Exchange("a"), Queue("b"), {"x", "y"})))

    def test_binding_single_key_string(self):
        binding = Binding(Exchange("a"), Queue("b"), "only.key")

        self.assertEqual(binding.routing_keys, frozenset({"only.key"}))

    def test_bindings_with_same_endpoints_and_different_keys_differ(self):
        self.assertNotEqual(
            Binding(Exchange("a"), Queue("b"), ["x"]),
            Binding(Exchange("a"), Queue("b"), ["y"]),
        )


class TestOperations(unittest.TestCase):
    def setUp(self):
        self.channel = make_mock_channel()

    def test_plan_declares_source_destination_then_binds(self):
        binding = Binding(Exchange("prices"), Queue("q"), ["prices.#"])

        self.assertEqual(
            plan_binding(binding),
            [DeclareExchange(Exchange("prices")), DeclareQueue(Queue("q")), Bind(binding)],
        )

    def test_declare_exchange(self):
        apply_operation(
            self.channel, DeclareExchange(Exchange("prices", ExchangeType.HEADERS))
        )

        self.channel.exchange.declare.assert_called_once_with(
            exchange="prices", exchange_type="headers", durable=True, auto_delete=False
        )

    def test_declare_queue(self):
        apply_operation(self.channel, DeclareQueue(Queue.private("queue-C1")))

        self.channel.queue.declare.assert_called_once_with(
            queue="queue-C1", durable=False, exclusive=True, auto_delete=True
        )

    def test_bind_queue_destination(self):
        apply_operation(
            self.channel, Bind(Binding(Exchange("prices"), Queue("q"), ["b", "a"]))
        )

        self.channel.queue.bind.assert_has_calls(
            [
                call(queue="q", exchange="prices", routing_key="a"),
                call(queue="q", exchange="prices", routing_key="b"),
            ]
        )
        self.channel.exchange.bind.assert_not_called()

    def test_bind_exchange_destination(self):
        apply_operation(
            self.channel,
            Bind(Binding(Exchange("prices"), Exchange("queue-C1"), ["prices.AAPL"])),
        )

        self.channel.exchange.bind.assert_called_once_with(
            destination="queue-C1", source="prices", routing_key="prices.AAPL"
        )
        self.channel.queue.bind.assert_not_called()

    def test_unknown_operation(self):
        with self.assertRaises(TypeError):
            apply_operation(self.channel, "declare everything")


class TestTopology(unittest.TestCase):
    def setUp(self):
        self.channel = make_mock_channel()
        self.reference = ChannelReference(self.channel)
        self.topology = Topology(self.reference)
        self.binding = Binding(
            Exchange("prices", ExchangeType.TOPIC),
            Exchange("queue-C1", ExchangeType.TOPIC),
            ["prices.AAPL", "prices.MSFT"],
        )

    def test_visit_declares_everything_and_records_state(self):
        operations = self.topology.visit(self.binding)

        self.assertEqual(len(operations), 3)
        self.assertEqual(self.channel.exchange.declare.call_count, 2)
        self.assertEqual(self.channel.exchange.bind.call_count, 2)
        self.assertEqual(
            self.topology.exchanges,
            frozenset({Exchange("prices"), Exchange("queue-C1")}),
        )
        self.assertEqual(self.topology.bindings, frozenset({self.binding}))
        self.assertEqual(self.topology.queues, frozenset())

    def test_visit_runs_in_a_single_execute(self):
        executions = []
        original = self.reference.execute

        def tracking_execute(operation):
            executions.append(operation)
            return original(operation)

        self.reference.execute = tracking_execute

        self.topology.visit(self.binding)

        self.assertEqual(len(executions), 1)

    def test_visit_twice_is_idempotent(self):
        self.topology.visit(self.binding)
        state = (self.topology.exchanges, self.topology.queues, self.topology.bindings)
        first_calls = list(self.channel.method_calls)

        self.topology.visit(self.binding)

        self.assertEqual(
            (self.topology.exchanges, self.topology.queues, self.topology.bindings), state
        )
        self.assertEqual(self.channel.method_calls, first_calls * 2)

    def test_failed_visit_records_nothing(self):
        self.channel.exchange.bind.side_effect = AMQPChannelError("no such exchange")

        with self.assertRaises(AMQPChannelError):
            self.topology.visit(self.binding)

        self.assertEqual(self.topology.bindings, frozenset())
        self.assertEqual(self.topology.exchanges, frozenset())

    def test_visit_after_dispose(self):
        self.reference.dispose()

        with self.assertRaises(ChannelClosedError):
            self.topology.visit(self.binding)

    def test_declare_single_node(self):
        operation = self.topology.declare(Queue("ticker-connect-queue"))

        self.assertEqual(operation, DeclareQueue(Queue("ticker-connect-queue")))
        self.assertTrue(self.topology.is_declared(Queue("ticker-connect-queue")))
        self.assertFalse(self.topology.is_declared(Exchange("prices")))

    def test_visit_all(self):
        other = Binding(Exchange("prices"), Queue("audit"), ["prices.#"])

        operations = self.topology.visit_all([self.binding, other])

        self.assertEqual(len(operations), 6)
        self.assertEqual(self.topology.bindings, frozenset({self.binding, other}))

    def test_concurrent_visits(self):
        bindings = [
            Binding(Exchange("prices"), Exchange(f"queue-C{i}"), [f"prices.T{i}"])
            for i in range(20)
        ]
        threads = [
            threading.Thread(target=self.topology.visit, args=(binding,))
            for binding in bindings
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(self.topology.bindings, frozenset(bindings))
        self.assertEqual(self.channel.exchange.bind.call_count, 20)
