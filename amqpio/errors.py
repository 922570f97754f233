from pika.exceptions import AMQPChannelError, AMQPConnectionError


# Broker client errors, surfaced unchanged by the facade
ConnectError = AMQPConnectionError
DeclarationError = AMQPChannelError


class AmqpIoError(Exception):
    pass


class PublishError(AmqpIoError):
    """The broker did not accept a published message"""

    def __init__(self, exchange, routing_key, reason=None):
        message = f"Cannot publish a message into AMQP exchange '{exchange}' with routing key '{routing_key}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.exchange = exchange
        self.routing_key = routing_key


class SerializationError(AmqpIoError):
    pass


class ConsumeTimeoutError(AmqpIoError):
    pass
