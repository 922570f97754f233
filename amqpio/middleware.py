import logging
from collections.abc import Mapping

import pika
from pika.exchange_type import ExchangeType

from amqpio.constants import (
    AMQ_DIRECT,
    AMQ_FANOUT,
    AMQ_TOPIC,
    AUTODELETE,
    DURABLE,
    EXCLUSIVE,
    HEARTBEAT,
    INTERNAL,
    NOPARAM,
    PASSIVE,
    has_flag,
)
from amqpio.exchange import AmqpIoExchange
from amqpio.naming import NamespaceResolver
from amqpio.queue import AmqpIoQueue
from common.config import AmqpIoConfig, ConnectionOptions, initialize_config
from common.utils import log_action


def _as_options(credentials):
    if credentials is None:
        return ConnectionOptions()
    if isinstance(credentials, ConnectionOptions):
        return credentials
    if isinstance(credentials, Mapping):
        return ConnectionOptions.from_mapping(credentials)
    raise TypeError(f"Unsupported credentials type: {type(credentials).__name__}")


class AmqpIo:
    """
    Owns one broker connection and one channel for an instance identity.

    The connection is opened on construction and reopened lazily by every
    entry point if it was closed. Exchange handles are cached by name for
    the lifetime of the object. All queue names and routing keys are
    prefixed with the instance name before they reach the broker.
    """

    def __init__(self, instance_name, credentials=None):
        self._namespace = NamespaceResolver(instance_name)
        self._credentials = _as_options(credentials)
        self._connection = None
        self._channel = None
        self._exchanges = {}
        self.logger = logging.getLogger(__name__)
        self.connect()

    @classmethod
    def from_config(cls, config: AmqpIoConfig):
        return cls(config.instance_name, config.credentials)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.disconnect()

    def __del__(self):
        connection = getattr(self, "_connection", None)
        if connection is not None and connection.is_open:
            connection.close()

    def __copy__(self):
        raise TypeError("AmqpIo instances cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("AmqpIo instances cannot be copied")

    @property
    def instance_name(self):
        return self._namespace.instance_name

    @property
    def namespace(self):
        return self._namespace

    @property
    def credentials(self):
        return self._credentials

    @property
    def channel(self):
        return self._channel

    def connect(self, credentials=None):
        """
        Open the connection and its channel unless already connected.

        Pass a ConnectionOptions or a mapping optionally containing:
            host, port, vhost, login, password, read_timeout, write_timeout, connect_timeout
        Options given here replace the ones remembered from construction.
        Connection errors from pika are raised unchanged.
        """
        if self.is_connected():
            return
        if credentials is not None:
            self._credentials = _as_options(credentials)

        parameters = self._credentials.to_connection_parameters()
        if self._credentials.heartbeat is None:
            parameters.heartbeat = HEARTBEAT

        try:
            connection = pika.BlockingConnection(parameters)
        except Exception as e:
            self.logger.error(f"action: rabbitmq_connect | result: fail | error: {e}")
            raise

        try:
            channel = connection.channel()
            channel.confirm_delivery()
        except Exception as e:
            self.logger.error(f"action: rabbitmq_channel_setup | result: fail | error: {e}")
            if connection.is_open:
                connection.close()
            raise

        self._connection = connection
        self._channel = channel

        self.logger.info(
            f"action: rabbitmq_connect | result: success | instance: {self.instance_name} | "
            f"host: {parameters.host} | vhost: {parameters.virtual_host}"
        )

    def disconnect(self):
        if self.is_connected():
            self._connection.close()
            self.logger.info(
                f"action: rabbitmq_disconnect | result: success | instance: {self.instance_name}"
            )

    def is_connected(self):
        return self._connection is not None and self._connection.is_open

    def make_route_name(self, subroute):
        return self._namespace.resolve_route_name(subroute)

    def make_queue_name(self, queue_name):
        return self._namespace.resolve_queue_name(queue_name)

    def get_exchange(self, name, kind, flags=DURABLE):
        """
        Return the handle for exchange `name`, declaring it on first use.

        Later calls with the same name return the cached handle whatever
        kind and flags they pass.
        """
        self.connect()
        kind = getattr(kind, "value", kind)
        if name not in self._exchanges:
            self._channel.exchange_declare(
                exchange=name,
                exchange_type=kind,
                passive=has_flag(flags, PASSIVE),
                durable=has_flag(flags, DURABLE),
                auto_delete=has_flag(flags, AUTODELETE),
                internal=has_flag(flags, INTERNAL),
            )
            self._exchanges[name] = AmqpIoExchange(self, name, kind, flags)
            log_action(
                "declare_exchange",
                "success",
                extra_fields={"exchange": name, "type": kind},
            )
        return self._exchanges[name]

    def get_exchange_direct(self):
        return self.get_exchange(AMQ_DIRECT, ExchangeType.direct, DURABLE)

    def get_exchange_topic(self):
        return self.get_exchange(AMQ_TOPIC, ExchangeType.topic, DURABLE)

    def get_exchange_fanout(self):
        return self.get_exchange(AMQ_FANOUT, ExchangeType.fanout, DURABLE)

    def init_queue(self, queue_name, flags=NOPARAM):
        """
        Declare the instance's queue `queue_name` and return a new handle.

        Repeated calls declare again; the broker treats an identical
        declaration as a no-op.
        """
        self.connect()
        queue_name = self.make_queue_name(queue_name)
        self._channel.queue_declare(
            queue=queue_name,
            passive=has_flag(flags, PASSIVE),
            durable=has_flag(flags, DURABLE),
            exclusive=has_flag(flags, EXCLUSIVE),
            auto_delete=has_flag(flags, AUTODELETE),
        )
        log_action("declare_queue", "success", extra_fields={"queue": queue_name})
        return AmqpIoQueue(self, queue_name)


_config = None
_instance = None


def configure(config: AmqpIoConfig):
    """Set the configuration the process-wide instance is built from"""
    global _config
    if _instance is not None:
        raise RuntimeError("AmqpIo instance already created, configure() must run first")
    _config = config


def instance() -> AmqpIo:
    """
    Return the process-wide AmqpIo, creating and connecting it on first use.

    Built from the value passed to configure(), or from initialize_config()
    when nothing was configured.
    """
    global _instance
    if _instance is None:
        config = _config if _config is not None else initialize_config()
        _instance = AmqpIo.from_config(config)
    return _instance


def reset_instance():
    """Disconnect and forget the process-wide instance and its configuration"""
    global _config, _instance
    if _instance is not None:
        _instance.disconnect()
    _instance = None
    _config = None
