#!/usr/bin/env python3

import logging
import sys

import amqpio
from common.config import initialize_config
from common.utils import initialize_log


def on_message(envelope, queue):
    """Log the delivery, ack it and stop after the first message"""
    logging.info(
        "action: message_received | result: success | routing_key: %s | body: %s",
        envelope.routing_key,
        envelope.body.decode("utf-8"),
    )
    queue.ack(envelope.delivery_tag)
    return False


def main():
    try:
        config = initialize_config()
        initialize_log(config.logging_level)

        logging.debug(
            "action: config | result: success | instance: %s | host: %s | logging_level: %s",
            config.instance_name,
            config.credentials.host,
            config.logging_level,
        )

        amqpio.configure(config)

        queue = amqpio.instance().init_queue("example-queue").bind_direct("example-route")
        amqpio.instance().get_exchange_direct().send_message("example-data", "example-route")
        queue.consume(on_message)

    except KeyError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
    except ValueError as e:
        print(f"Configuration Parse Error: {e}", file=sys.stderr)
    except KeyboardInterrupt:
        logging.info("action: shutdown | result: in_progress | msg: received keyboard interrupt")
    finally:
        amqpio.reset_instance()


if __name__ == "__main__":
    main()
