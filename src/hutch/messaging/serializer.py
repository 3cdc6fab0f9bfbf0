"""
Message serializers.

The publish pipeline depends only on ``MessageSerializer``. The JSON
implementation uses pydantic for both models and plain python types.
"""

import abc
import logging
from typing import TypeVar

import pydantic
from pydantic import BaseModel, TypeAdapter
from pydantic_core import PydanticSerializationError

from hutch.config import HutchConfig
from hutch.exceptions import SerializationError
from hutch.messaging.envelope import Message

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MessageSerializer(abc.ABC):
    @property
    @abc.abstractmethod
    def content_type(self) -> str:
        pass

    @abc.abstractmethod
    def serialize(self, message: Message) -> bytes:
        """
        Serialize the envelope's payload.

        :raises SerializationError: if the payload cannot be serialized
        """
        pass

    @abc.abstractmethod
    def deserialize(self, body: bytes | str, message_type: type[T]) -> T:
        """
        Deserialize a body into an instance of message_type.

        :raises SerializationError: if the body does not match the type
        """
        pass


class JsonMessageSerializer(MessageSerializer):
    @property
    def content_type(self) -> str:
        return HutchConfig.DEFAULT_CONTENT_TYPE

    def serialize(self, message: Message) -> bytes:
        payload = message.payload
        try:
            if isinstance(payload, BaseModel):
                return payload.model_dump_json().encode("utf-8")
            return TypeAdapter(type(payload)).dump_json(payload)
        except (PydanticSerializationError, pydantic.PydanticSchemaGenerationError) as e:
            logger.error("Failed to serialize %s: %s", message.message_type, e)
            raise SerializationError(message.message_type, str(e)) from e

    def deserialize(self, body: bytes | str, message_type: type[T]) -> T:
        try:
            if isinstance(message_type, type) and issubclass(message_type, BaseModel):
                return message_type.model_validate_json(body)
            return TypeAdapter(message_type).validate_json(body)
        except pydantic.ValidationError as e:
            raise SerializationError(getattr(message_type, "__name__", str(message_type)), str(e)) from e
