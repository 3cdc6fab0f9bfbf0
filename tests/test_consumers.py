"""
Tests for topology driving consumers.
"""

import unittest
from unittest.mock import Mock

from hutch.channel import ChannelReference
from hutch.consumers import TopologyConsumer, prefixed_keys
from hutch.samples.stock_ticker import ConnectMessage, ConnectMessageConsumer
from hutch.topology import Binding, Exchange, ExchangeType, Queue, Topology
from tests.conftest import make_mock_channel



class TestPrefixedKeys(unittest.TestCase):
    def test_prefixes_each_value(self):
        derive = prefixed_keys("prices", "tickers")

        self.assertEqual(
            derive(ConnectMessage(client_id="C1", queue_name="q", tickers=["AAPL", "MSFT"])),
            ["prices.AAPL", "prices.MSFT"],
        )

    def test_single_string_value(self):
        message = Mock()
        message.ticker = "AAPL"

        self.assertEqual(prefixed_keys("quotes", "ticker")(message), ["quotes.AAPL"])


class TestConnectMessageConsumer(unittest.TestCase):
    def setUp(self):
        self.channel = make_mock_channel()
        self.topology = Topology(ChannelReference(self.channel))
        self.prices = Exchange("prices", ExchangeType.TOPIC)
        self.consumer = ConnectMessageConsumer(self.topology, self.prices)

    def test_connect_binds_client_exchange_to_requested_tickers(self):
        self.consumer.consume(
            ConnectMessage(client_id="C1", queue_name="queue-C1", tickers=["AAPL", "MSFT"])
        )

        expected = Binding(
            Exchange("prices", ExchangeType.TOPIC),
            Exchange("queue-C1", ExchangeType.TOPIC),
            {"prices.AAPL", "prices.MSFT"},
        )
        self.assertEqual(self.topology.bindings, frozenset({expected}))
        self.assertEqual(self.channel.exchange.bind.call_count, 2)
        self.channel.exchange.bind.assert_any_call(
            destination="queue-C1", source="prices", routing_key="prices.AAPL"
        )
        self.channel.exchange.bind.assert_any_call(
            destination="queue-C1", source="prices", routing_key="prices.MSFT"
        )

    def test_connect_without_tickers_does_not_visit(self):
        self.consumer.consume(ConnectMessage(client_id="C2", queue_name="queue-C2"))

        self.assertEqual(self.topology.bindings, frozenset())
        self.assertEqual(self.channel.method_calls, [])


class TestTopologyConsumer(unittest.TestCase):
    def test_issues_exactly_one_visit_with_full_key_set(self):
        topology = Mock()
        exchange = Exchange("alerts", ExchangeType.DIRECT)
        consumer = TopologyConsumer(
            topology,
            exchange,
            derive_keys=lambda message: [f"alerts.{level}" for level in message["levels"]],
            destination=lambda message: Queue.private(message["queue"]),
        )

        consumer.consume({"levels": ["warn", "error", ""], "queue": "ops"})

        topology.visit.assert_called_once_with(
            Binding(exchange, Queue("ops"), ["alerts.warn", "alerts.error"])
        )
