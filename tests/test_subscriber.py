"""
Tests for Subscriber dispatch.
"""

import time
import unittest
from unittest.mock import Mock

from hutch.channel import ChannelReference
from hutch.messaging.serializer import JsonMessageSerializer
from hutch.subscriber import Subscriber
from hutch.topology import Binding, Exchange, Queue, Topology
from tests.conftest import RecordingConsumer, make_mock_channel
from tests.messages import Ping


def make_delivery(body):
    delivery = Mock()
    delivery.body = body
    delivery.delivery_tag = 1
    return delivery


class TestSubscriber(unittest.TestCase):
    def setUp(self):
        self.topology_channel = make_mock_channel(1)
        self.channel = make_mock_channel(2)
        self.reference = ChannelReference(self.channel)
        self.topology = Topology(ChannelReference(self.topology_channel))
        self.consumer = RecordingConsumer()
        self.queue = Queue("pings")
        self.subscriber = Subscriber(
            self.reference,
            self.topology,
            JsonMessageSerializer(),
            Ping,
            self.consumer,
            self.queue,
            bindings=[Binding(Exchange("pings"), self.queue, ["pings.#"])],
        )

    def deliver(self, *deliveries):
        """Make the next process_data_events call hand deliveries to the handler."""

        def process(to_tuple=False):
            for delivery in deliveries:
                self.subscriber._message_handler(delivery)

        self.channel.process_data_events.side_effect = process

    def test_start_declares_and_registers_consumer(self):
        self.subscriber.start(run_thread=False)

        # once for the queue itself, once as the binding destination
        self.assertEqual(self.topology_channel.queue.declare.call_count, 2)
        self.topology_channel.queue.bind.assert_called_once_with(
            queue="pings", exchange="pings", routing_key="pings.#"
        )
        self.channel.basic.qos.assert_called_once_with(prefetch_count=1)
        self.assertEqual(self.channel.basic.consume.call_args.kwargs["queue"], "pings")

    def test_drain_dispatches_and_acks(self):
        self.subscriber.start(run_thread=False)
        delivery = make_delivery('{"id": 4}')
        self.deliver(delivery)

        self.assertEqual(self.subscriber.drain(), 1)

        self.assertEqual(self.consumer.consumed, [Ping(id=4)])
        delivery.ack.assert_called_once()
        delivery.reject.assert_not_called()

    def test_undecodable_message_is_rejected(self):
        self.subscriber.start(run_thread=False)
        delivery = make_delivery('{"id": "four"}')
        self.deliver(delivery)

        self.subscriber.drain()

        self.assertEqual(self.consumer.consumed, [])
        delivery.reject.assert_called_once_with(requeue=False)
        delivery.ack.assert_not_called()

    def test_consumer_error_rejects_without_requeue(self):
        self.consumer._error = RuntimeError("handler failed")
        self.subscriber.start(run_thread=False)
        delivery = make_delivery('{"id": 4}')
        self.deliver(delivery)

        self.subscriber.drain()

        delivery.reject.assert_called_once_with(requeue=False)
        delivery.ack.assert_not_called()

    def test_drain_with_nothing_pending(self):
        self.subscriber.start(run_thread=False)

        self.assertEqual(self.subscriber.drain(), 0)

    def test_background_thread_dispatches(self):
        delivery = make_delivery('{"id": 8}')
        delivered = []

        def process(to_tuple=False):
            if not delivered:
                delivered.append(True)
                self.subscriber._message_handler(delivery)

        self.channel.process_data_events.side_effect = process
        self.subscriber._poll_interval = 0.01
        self.subscriber.start()

        deadline = time.time() + 5
        while not self.consumer.consumed and time.time() < deadline:
            time.sleep(0.01)
        self.subscriber.shutdown()

        self.assertEqual(self.consumer.consumed, [Ping(id=8)])

    def test_shutdown_cancels_and_closes(self):
        self.subscriber.start(run_thread=False)

        self.subscriber.shutdown()

        self.channel.basic.cancel.assert_called_once_with("consumer-tag-123")
        self.channel.close.assert_called_once()
        self.assertTrue(self.reference.is_disposed)
