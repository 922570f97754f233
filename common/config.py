#!/usr/bin/env python3

import os
from configparser import ConfigParser
from dataclasses import dataclass, field
from typing import Optional

import pika


# Accepted spellings for each ConnectionOptions field
OPTION_ALIASES = {
    "host": "host",
    "port": "port",
    "vhost": "vhost",
    "login": "login",
    "password": "password",
    "heartbeat": "heartbeat",
    "read_timeout": "read_timeout",
    "readTimeout": "read_timeout",
    "write_timeout": "write_timeout",
    "writeTimeout": "write_timeout",
    "connect_timeout": "connect_timeout",
    "connectTimeout": "connect_timeout",
}


@dataclass
class ConnectionOptions:
    """Connection options for the broker, None means pika's default"""

    host: Optional[str] = None
    port: Optional[int] = None
    vhost: Optional[str] = None
    login: Optional[str] = None
    password: Optional[str] = None
    read_timeout: Optional[float] = None
    write_timeout: Optional[float] = None
    connect_timeout: Optional[float] = None
    heartbeat: Optional[int] = None

    @classmethod
    def from_mapping(cls, mapping):
        """Build options from a dict using snake_case or camelCase keys"""
        kwargs = {}
        for key, value in mapping.items():
            if key not in OPTION_ALIASES:
                raise KeyError(f"Unknown connection option '{key}'")
            kwargs[OPTION_ALIASES[key]] = value
        return cls(**kwargs)

    def to_connection_parameters(self):
        """Translate the options into pika.ConnectionParameters"""
        kwargs = {}
        if self.host is not None:
            kwargs["host"] = self.host
        if self.port is not None:
            kwargs["port"] = int(self.port)
        if self.vhost is not None:
            kwargs["virtual_host"] = self.vhost
        if self.login is not None or self.password is not None:
            kwargs["credentials"] = pika.PlainCredentials(
                self.login or "guest", self.password or "guest"
            )
        if self.connect_timeout is not None:
            kwargs["socket_timeout"] = float(self.connect_timeout)
            kwargs["stack_timeout"] = float(self.connect_timeout)
        if self.write_timeout is not None:
            kwargs["blocked_connection_timeout"] = float(self.write_timeout)
        if self.heartbeat is not None:
            kwargs["heartbeat"] = int(self.heartbeat)
        return pika.ConnectionParameters(**kwargs)


@dataclass
class AmqpIoConfig:
    """Configuration for an AmqpIo instance"""

    instance_name: str
    credentials: ConnectionOptions = field(default_factory=ConnectionOptions)
    logging_level: str = "INFO"


def initialize_config(config_file="config.ini"):
    """Parse config file to find program config params

    Searches for configuration parameters in the DEFAULT section of the
    config file, which may be absent. Environment variables take precedence
    over config file values. The instance name is required: if it is not
    found a KeyError is thrown. If a numeric parameter could not be parsed,
    a ValueError is thrown. Returns an AmqpIoConfig.
    """

    config = ConfigParser()
    config.read(config_file)

    def _get_config(env_key, required=False):
        """Get configuration value from environment variable or config file"""
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value

        value = config["DEFAULT"].get(env_key)
        if value is None and required:
            raise KeyError(
                f"Required configuration parameter '{env_key}' not found in environment or config file"
            )
        return value

    def _optional_number(env_key, cast):
        value = _get_config(env_key)
        return cast(value) if value is not None else None

    try:
        credentials = ConnectionOptions(
            host=_get_config("RABBITMQ_HOST"),
            port=_optional_number("RABBITMQ_PORT", int),
            vhost=_get_config("RABBITMQ_VHOST"),
            login=_get_config("RABBITMQ_USER"),
            password=_get_config("RABBITMQ_PASSWORD"),
            read_timeout=_optional_number("RABBITMQ_READ_TIMEOUT", float),
            write_timeout=_optional_number("RABBITMQ_WRITE_TIMEOUT", float),
            connect_timeout=_optional_number("RABBITMQ_CONNECT_TIMEOUT", float),
        )
        amqpio_config = AmqpIoConfig(
            instance_name=_get_config("AMQPIO_INSTANCE_NAME", required=True),
            credentials=credentials,
            logging_level=_get_config("LOGGING_LEVEL") or "INFO",
        )

    except KeyError as e:
        raise KeyError("Configuration error: {}. Aborting".format(e))
    except ValueError as e:
        raise ValueError("Configuration parsing error: {}. Aborting".format(e))

    return amqpio_config
