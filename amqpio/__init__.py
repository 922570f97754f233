"""
Instance-scoped naming layer over a pika RabbitMQ connection.

Every queue name and routing key is prefixed with an instance name, so
several services can share one broker and the amq.* exchanges without
colliding:
- AmqpIo: connection manager, exchange cache and queue declaration
- AmqpIoExchange: publishes messages, encoding structured payloads as JSON
- AmqpIoQueue: binds a queue to exchanges and runs the consume loop

Usage:
    amqp = AmqpIo("billing", {"host": "rabbitmq"})
    queue = amqp.init_queue("invoices").bind_direct("created")
    amqp.get_exchange_direct().send_message({"id": 1}, "created")

    def handler(envelope, queue):
        queue.ack(envelope.delivery_tag)
        return False  # stop consuming

    queue.consume(handler)
"""

from .constants import (
    AMQ_DIRECT,
    AMQ_FANOUT,
    AMQ_TOPIC,
    AUTODELETE,
    DURABLE,
    EXCLUSIVE,
    INTERNAL,
    MANDATORY,
    NOPARAM,
    PASSIVE,
)
from .errors import (
    AmqpIoError,
    ConnectError,
    ConsumeTimeoutError,
    DeclarationError,
    PublishError,
    SerializationError,
)
from .exchange import AmqpIoExchange, encode_payload
from .middleware import AmqpIo, configure, instance, reset_instance
from .naming import NamespaceResolver
from .queue import AmqpIoQueue, Envelope

__all__ = [
    "AmqpIo",
    "AmqpIoExchange",
    "AmqpIoQueue",
    "Envelope",
    "NamespaceResolver",
    "encode_payload",
    "configure",
    "instance",
    "reset_instance",
    "AmqpIoError",
    "ConnectError",
    "ConsumeTimeoutError",
    "DeclarationError",
    "PublishError",
    "SerializationError",
    "AMQ_DIRECT",
    "AMQ_FANOUT",
    "AMQ_TOPIC",
    "AUTODELETE",
    "DURABLE",
    "EXCLUSIVE",
    "INTERNAL",
    "MANDATORY",
    "NOPARAM",
    "PASSIVE",
]
