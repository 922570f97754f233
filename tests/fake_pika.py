"""
In-memory stand-in for pika.BlockingConnection.

Routes published messages through direct, topic and fanout exchanges to
bound queues so the facade can be exercised without a broker.
"""
from collections import deque
from types import SimpleNamespace

from pika.exceptions import (
    ChannelClosedByBroker,
    ChannelWrongStateError,
    NackError,
    UnroutableError,
)


def topic_matches(pattern, routing_key):
    """AMQP topic matching: '*' is one word, '#' is zero or more words"""

    def _match(p, k):
        if not p:
            return not k
        if p[0] == "#":
            return any(_match(p[1:], k[i:]) for i in range(len(k) + 1))
        if not k:
            return False
        return (p[0] == "*" or p[0] == k[0]) and _match(p[1:], k[1:])

    return _match(pattern.split("."), routing_key.split("."))


class FakeBroker:
    def __init__(self):
        self.exchanges = {
            "": "direct",
            "amq.direct": "direct",
            "amq.topic": "topic",
            "amq.fanout": "fanout",
        }
        self.queues = {}
        self.bindings = []
        self.published = []
        self.connections = []
        self.acked = []
        self.nacked = []
        self.nack_next_publish = False
        self.fail_connect = None
        self.fail_channel = None

    def connect(self, parameters):
        if self.fail_connect is not None:
            raise self.fail_connect
        connection = FakeConnection(self, parameters)
        self.connections.append(connection)
        return connection

    def route(self, exchange, routing_key):
        kind = self.exchanges[exchange]
        if exchange == "":
            return [routing_key] if routing_key in self.queues else []
        targets = []
        for queue, bound_exchange, key in self.bindings:
            if bound_exchange != exchange or queue in targets:
                continue
            if (
                kind == "fanout"
                or (kind == "direct" and key == routing_key)
                or (kind == "topic" and topic_matches(key, routing_key))
            ):
                targets.append(queue)
        return targets


class FakeConnection:
    def __init__(self, broker, parameters):
        self.broker = broker
        self.parameters = parameters
        self.is_open = True
        self.channels = []

    @property
    def is_closed(self):
        return not self.is_open

    def channel(self):
        if self.broker.fail_channel is not None:
            error, self.broker.fail_channel = self.broker.fail_channel, None
            raise error
        channel = FakeChannel(self.broker, self)
        self.channels.append(channel)
        return channel

    def close(self):
        for channel in self.channels:
            channel.is_open = False
        self.is_open = False


class FakeChannel:
    def __init__(self, broker, connection):
        self.broker = broker
        self.connection = connection
        self.is_open = True
        self.confirms_enabled = False
        self.cancelled = 0
        self.declared_exchanges = []
        self.declared_queues = []
        self._next_tag = 1

    def _ensure_open(self):
        if not self.is_open:
            raise ChannelWrongStateError("Channel is closed.")

    def confirm_delivery(self):
        self.confirms_enabled = True

    def exchange_declare(self, exchange, exchange_type="direct", passive=False, durable=False,
                         auto_delete=False, internal=False, arguments=None):
        self._ensure_open()
        kind = getattr(exchange_type, "value", exchange_type)
        self.declared_exchanges.append(
            dict(exchange=exchange, exchange_type=kind, passive=passive, durable=durable,
                 auto_delete=auto_delete, internal=internal)
        )
        if passive and exchange not in self.broker.exchanges:
            raise ChannelClosedByBroker(404, f"NOT_FOUND - no exchange '{exchange}'")
        self.broker.exchanges.setdefault(exchange, kind)

    def queue_declare(self, queue, passive=False, durable=False, exclusive=False,
                      auto_delete=False, arguments=None):
        self._ensure_open()
        self.declared_queues.append(
            dict(queue=queue, passive=passive, durable=durable, exclusive=exclusive,
                 auto_delete=auto_delete)
        )
        if passive and queue not in self.broker.queues:
            raise ChannelClosedByBroker(404, f"NOT_FOUND - no queue '{queue}'")
        self.broker.queues.setdefault(queue, deque())

    def queue_bind(self, queue, exchange, routing_key=None, arguments=None):
        self._ensure_open()
        if exchange not in self.broker.exchanges:
            raise ChannelClosedByBroker(404, f"NOT_FOUND - no exchange '{exchange}'")
        self.broker.bindings.append((queue, exchange, routing_key))

    def basic_publish(self, exchange, routing_key, body, properties=None, mandatory=False):
        self._ensure_open()
        if isinstance(body, str):
            body = body.encode("utf-8")
        if exchange not in self.broker.exchanges:
            raise ChannelClosedByBroker(404, f"NOT_FOUND - no exchange '{exchange}'")
        if self.broker.nack_next_publish:
            self.broker.nack_next_publish = False
            raise NackError([])
        targets = self.broker.route(exchange, routing_key)
        if mandatory and not targets:
            raise UnroutableError([])
        self.broker.published.append(
            SimpleNamespace(exchange=exchange, routing_key=routing_key, body=body,
                            properties=properties, mandatory=mandatory)
        )
        for queue in targets:
            self.broker.queues[queue].append((exchange, routing_key, body, properties))

    def consume(self, queue, auto_ack=False, exclusive=False, arguments=None,
                inactivity_timeout=None):
        self._ensure_open()
        pending = self.broker.queues[queue]
        while True:
            if not pending:
                if inactivity_timeout is None:
                    return
                yield None, None, None
                continue
            exchange, routing_key, body, properties = pending.popleft()
            method = SimpleNamespace(
                delivery_tag=self._next_tag,
                routing_key=routing_key,
                exchange=exchange,
                redelivered=False,
            )
            self._next_tag += 1
            yield method, properties, body

    def cancel(self):
        self.cancelled += 1
        return 0

    def basic_ack(self, delivery_tag=0, multiple=False):
        self.broker.acked.append(delivery_tag)

    def basic_nack(self, delivery_tag=0, multiple=False, requeue=True):
        self.broker.nacked.append((delivery_tag, requeue))

    def close(self):
        self.is_open = False
