import dataclasses
import json
import logging

import pika
from pika.exceptions import NackError, UnroutableError

from amqpio.constants import MANDATORY, NOPARAM, has_flag
from amqpio.errors import PublishError, SerializationError
from common.utils import log_action


def _encode_default(value):
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_payload(data):
    """
    Turn a payload into a message body.

    Text and bytes go out unchanged, numbers as their text form, booleans as
    JSON true/false and None as an empty body. Everything else is treated as
    a structured value and encoded as strict JSON (no NaN or Infinity).

    Raises:
        SerializationError: if the structured value cannot be JSON encoded
    """
    if isinstance(data, (str, bytes)):
        return data
    if isinstance(data, bytearray):
        return bytes(data)
    if data is None:
        return ""
    if isinstance(data, bool):
        return "true" if data else "false"
    if isinstance(data, (int, float)):
        return str(data)
    try:
        return json.dumps(data, default=_encode_default, allow_nan=False)
    except (TypeError, ValueError) as e:
        log_action("encode_payload", "fail", level=logging.ERROR, error=e)
        raise SerializationError(f"Cannot encode message payload as JSON: {e}") from e


class AmqpIoExchange:
    """
    Handle over a declared exchange.

    Instances are created and cached by AmqpIo.get_exchange(); the routing
    key of every message is resolved through the owning AmqpIo.
    """

    def __init__(self, amqp, name, kind, flags):
        self._amqp = amqp
        self._name = name
        self._kind = kind
        self._flags = flags
        self.logger = logging.getLogger(__name__)

    @property
    def name(self):
        return self._name

    @property
    def kind(self):
        return self._kind

    @property
    def flags(self):
        return self._flags

    def get_name(self):
        return self._name

    def send_message(self, data, subroute, flags=NOPARAM, attributes=None):
        """
        Publish data to this exchange under the instance's routing key.

        Args:
            data: str/bytes payload, or a structured value to encode as JSON
            subroute: routing key before the instance prefix
            flags: MANDATORY or NOPARAM
            attributes: message properties, as pika.BasicProperties kwargs

        Raises:
            SerializationError: the payload could not be encoded
            PublishError: the broker rejected or could not route the message
        """
        body = encode_payload(data)
        self._amqp.connect()
        routing_key = self._amqp.make_route_name(subroute)
        properties = pika.BasicProperties(**(attributes or {}))

        try:
            self._amqp.channel.basic_publish(
                exchange=self._name,
                routing_key=routing_key,
                body=body,
                properties=properties,
                mandatory=has_flag(flags, MANDATORY),
            )
        except (UnroutableError, NackError) as e:
            log_action(
                "publish",
                "fail",
                level=logging.ERROR,
                error=e,
                extra_fields={"exchange": self._name, "routing_key": routing_key},
            )
            raise PublishError(self._name, routing_key, type(e).__name__) from e

        self.logger.debug(
            f"action: publish | result: success | exchange: {self._name} | routing_key: {routing_key}"
        )
