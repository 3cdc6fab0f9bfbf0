"""
Custom exceptions for the hutch messaging layer.

This module contains all custom exception classes raised by publishers,
serializers and channel references.
"""

from typing import Optional


class HutchException(Exception):
    """Base class for all hutch errors."""


class RoutingKeyError(HutchException):
    """Raised when a routing strategy resolves an empty or absent routing key for a message.

    This is a configuration defect and must not be retried.
    """

    def __init__(self, message_type: str, message: Optional[str] = None):
        self.message_type = message_type
        if message is None:
            message = (
                f"Unable to publish a message of type {message_type} because it has no routing key, "
                "this could be because HasRoutingKey is implemented but routing_key returned nothing"
            )
        super().__init__(message)


class SerializationError(HutchException):
    """Raised by a serializer when a message cannot be converted to or from bytes."""

    def __init__(self, message_type: str, message: Optional[str] = None):
        self.message_type = message_type
        if message is None:
            message = f"Unable to serialize message of type {message_type}"
        super().__init__(message)


class ChannelClosedError(HutchException):
    """Raised when an operation is attempted on a channel reference that has been disposed."""

    def __init__(self, message: Optional[str] = None):
        if message is None:
            message = "Channel reference has been disposed"
        super().__init__(message)
