#!/usr/bin/env python3

import os
from configparser import ConfigParser
from dataclasses import dataclass

from common.utils import (
    CONNECTION_TIMEOUT,
    CONSUME_INACTIVITY_TIMEOUT,
    HEARTBEAT,
    PUBLISH_TIMEOUT,
)


@dataclass
class BrokerConfig:
    """Configuration for the RabbitMQ connection"""

    host: str
    port: int
    username: str
    password: str
    heartbeat: int = HEARTBEAT
    connection_timeout: float = CONNECTION_TIMEOUT
    publish_timeout: float = PUBLISH_TIMEOUT
    consume_inactivity_timeout: float = CONSUME_INACTIVITY_TIMEOUT


@dataclass
class ClientConfig:
    """Configuration for the command line client"""

    exchange: str
    logging_level: str


def initialize_config(config_path="config.ini"):
    """Parse config file to find program config params

    Function that searches for program configuration parameters in the config file.
    Environment variables take precedence over config file values.
    If at least one of the required parameters is not found a KeyError exception
    is thrown. If a parameter could not be parsed, a ValueError is thrown.
    If parsing succeeded, the function returns ClientConfig and BrokerConfig objects
    """

    config = ConfigParser()

    # Read config file - raise error if it doesn't exist or can't be read
    config_files_read = config.read(config_path)
    if not config_files_read:
        raise KeyError(
            f"Configuration file '{config_path}' not found or could not be read"
        )

    def _get_required_config(env_key, config_key):
        """Get configuration value from environment variable or config file, raise error if missing"""
        # Environment variables take precedence
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value

        try:
            return config["DEFAULT"][config_key]
        except KeyError:
            raise KeyError(
                f"Required configuration parameter '{config_key}' not found in environment variable '{env_key}' or config file"
            )

    def _get_optional_config(env_key, config_key, default):
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value
        return config["DEFAULT"].get(config_key, default)

    try:
        client_config = ClientConfig(
            exchange=_get_required_config("EXCHANGE", "EXCHANGE"),
            logging_level=_get_required_config("LOGGING_LEVEL", "LOGGING_LEVEL"),
        )

        broker_config = BrokerConfig(
            host=_get_required_config("RABBITMQ_HOST", "RABBITMQ_HOST"),
            port=int(_get_required_config("RABBITMQ_PORT", "RABBITMQ_PORT")),
            username=_get_required_config("RABBITMQ_USER", "RABBITMQ_USER"),
            password=_get_required_config("RABBITMQ_PASSWORD", "RABBITMQ_PASSWORD"),
            heartbeat=int(
                _get_optional_config(
                    "RABBITMQ_HEARTBEAT", "RABBITMQ_HEARTBEAT", HEARTBEAT
                )
            ),
            connection_timeout=float(
                _get_optional_config(
                    "RABBITMQ_CONNECTION_TIMEOUT",
                    "RABBITMQ_CONNECTION_TIMEOUT",
                    CONNECTION_TIMEOUT,
                )
            ),
            publish_timeout=float(
                _get_optional_config(
                    "RABBITMQ_PUBLISH_TIMEOUT",
                    "RABBITMQ_PUBLISH_TIMEOUT",
                    PUBLISH_TIMEOUT,
                )
            ),
            consume_inactivity_timeout=float(
                _get_optional_config(
                    "RABBITMQ_CONSUME_INACTIVITY_TIMEOUT",
                    "RABBITMQ_CONSUME_INACTIVITY_TIMEOUT",
                    CONSUME_INACTIVITY_TIMEOUT,
                )
            ),
        )

    except KeyError as e:
        raise KeyError("Configuration error: {}. Aborting client".format(e))
    except ValueError as e:
        raise ValueError("Configuration parsing error: {}. Aborting client".format(e))

    return client_config, broker_config
