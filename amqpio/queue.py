import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from amqpio.constants import AMQ_DIRECT, AMQ_FANOUT, AMQ_TOPIC
from amqpio.errors import ConsumeTimeoutError
from common.utils import log_action


@dataclass(frozen=True)
class Envelope:
    """A delivered message"""

    body: bytes
    delivery_tag: int
    routing_key: str
    exchange: str
    redelivered: bool = False
    properties: Optional[Any] = None

    def get_body(self):
        return self.body

    def get_delivery_tag(self):
        return self.delivery_tag

    def json(self):
        return json.loads(self.body)


class AmqpIoQueue:
    """
    Handle over a declared queue.

    Handles are immutable: bind() declares the binding on the broker and
    returns a new handle that also records it, so calls chain fluently:

        queue = amqp.init_queue("orders").bind_direct("created")
    """

    def __init__(self, amqp, name: str, bindings: Tuple[Tuple[str, str], ...] = ()):
        self._amqp = amqp
        self._name = name
        self._bindings = tuple(bindings)
        self.logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return self._name

    @property
    def bindings(self) -> Tuple[Tuple[str, str], ...]:
        return self._bindings

    def bind(self, exchange_name: str, subroute: str) -> "AmqpIoQueue":
        self._amqp.connect()
        routing_key = self._amqp.make_route_name(subroute)
        self._amqp.channel.queue_bind(
            queue=self._name, exchange=exchange_name, routing_key=routing_key
        )
        self.logger.info(
            f"action: bind_queue | result: success | "
            f"queue: {self._name} | exchange: {exchange_name} | routing_key: {routing_key}"
        )
        return AmqpIoQueue(
            self._amqp, self._name, self._bindings + ((exchange_name, routing_key),)
        )

    def bind_direct(self, subroute: str) -> "AmqpIoQueue":
        return self.bind(AMQ_DIRECT, subroute)

    def bind_topic(self, subroute: str) -> "AmqpIoQueue":
        return self.bind(AMQ_TOPIC, subroute)

    def bind_fanout(self, subroute: str) -> "AmqpIoQueue":
        return self.bind(AMQ_FANOUT, subroute)

    def get_internal(self):
        """The pika channel this queue was declared on"""
        return self._amqp.channel

    def ack(self, delivery_tag: int) -> None:
        self._amqp.channel.basic_ack(delivery_tag=delivery_tag)

    def nack(self, delivery_tag: int, requeue: bool = True) -> None:
        self._amqp.channel.basic_nack(delivery_tag=delivery_tag, requeue=requeue)

    def consume(
        self, handler: Callable[[Envelope, "AmqpIoQueue"], bool], auto_ack: bool = False
    ) -> None:
        """
        Run the blocking consume loop on this queue.

        handler(envelope, queue) is called once per delivery and must ack it
        unless auto_ack is set. The loop stops when the handler returns a
        falsy value. With a read timeout configured, a quiet period of that
        length raises ConsumeTimeoutError.
        """
        self._amqp.connect()
        channel = self._amqp.channel
        read_timeout = self._amqp.credentials.read_timeout

        log_action("start_consuming", "in_progress", extra_fields={"queue": self._name})
        try:
            for method, properties, body in channel.consume(
                queue=self._name, auto_ack=auto_ack, inactivity_timeout=read_timeout
            ):
                if method is None:
                    log_action(
                        "consume",
                        "fail",
                        level=logging.ERROR,
                        error="read timeout",
                        extra_fields={"queue": self._name},
                    )
                    raise ConsumeTimeoutError(
                        f"No message on queue '{self._name}' for {read_timeout}s"
                    )

                envelope = Envelope(
                    body=body,
                    delivery_tag=method.delivery_tag,
                    routing_key=method.routing_key,
                    exchange=method.exchange,
                    redelivered=method.redelivered,
                    properties=properties,
                )
                if not handler(envelope, self):
                    break
        finally:
            if channel.is_open:
                channel.cancel()

        log_action("stop_consuming", "success", extra_fields={"queue": self._name})
