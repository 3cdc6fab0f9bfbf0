"""
Shared pytest fixtures and utilities for testing.

No broker is needed: AMQP channels are replaced with ``unittest.mock.Mock``
objects whose ``basic``, ``exchange`` and ``queue`` attributes record every
call the publish pipeline and topology make.

### Available Fixtures

- `mock_channel`: Mock AMQP channel that reports itself open
- `channel_reference`: ChannelReference wrapping `mock_channel`
- `topology`: Topology using `channel_reference`
- `exchange`: a topic Exchange named `test-exchange`
- `serializer`: JsonMessageSerializer
- `publisher`: Publisher on `channel_reference` routing everything to `test.key`
- `recording_consumer`: RecordingConsumer collecting consumed messages

### Usage Examples

```python
def test_publish(publisher, mock_channel):
    publisher.publish(Ping(id=1))
    mock_channel.basic.publish.assert_called_once()
```
"""

from typing import Any, List
from unittest.mock import Mock

import pytest

from hutch.channel import ChannelReference
from hutch.consumers import ConsumerInterface
from hutch.messaging.publisher import Publisher
from hutch.messaging.routing import StaticRouter
from hutch.messaging.serializer import JsonMessageSerializer
from hutch.topology import Exchange, ExchangeType, Topology


def make_mock_channel(channel_id: int = 1) -> Mock:
    """Create a Mock AMQP channel that reports itself open."""
    channel = Mock()
    channel.channel_id = channel_id
    channel.is_open = True
    channel.queue.declare.return_value = {"queue": "declared-queue"}
    channel.basic.consume.return_value = "consumer-tag-123"
    return channel


def make_mock_connection() -> Mock:
    """Create a Mock AMQP connection handing out a new mock channel per call."""
    connection = Mock()
    connection.is_open = True
    channels: List[Mock] = []

    def open_channel():
        channel = make_mock_channel(len(channels) + 1)
        channels.append(channel)
        return channel

    connection.channel.side_effect = open_channel
    connection.opened_channels = channels
    return connection


class RecordingConsumer(ConsumerInterface[Any]):
    """Consumer that records every message it receives."""

    def __init__(self, error: Exception = None):
        self.consumed: List[Any] = []
        self._error = error

    def consume(self, message: Any) -> None:
        self.consumed.append(message)
        if self._error is not None:
            raise self._error


@pytest.fixture
def mock_channel():
    return make_mock_channel()


@pytest.fixture
def channel_reference(mock_channel):
    return ChannelReference(mock_channel, name="test-channel")


@pytest.fixture
def topology(channel_reference):
    return Topology(channel_reference)


@pytest.fixture
def exchange():
    return Exchange("test-exchange", ExchangeType.TOPIC)


@pytest.fixture
def serializer():
    return JsonMessageSerializer()


@pytest.fixture
def publisher(channel_reference, serializer, exchange):
    return Publisher(channel_reference, serializer, exchange, StaticRouter("test.key"))


@pytest.fixture
def recording_consumer():
    return RecordingConsumer()
