#!/usr/bin/env python3

import argparse
import logging
import signal
import sys

from common.config import initialize_config
from common.shutdown_monitor import ShutdownMonitor
from rabbitqueue import QueueConnection, QueueError

EXIT_OK = 0
EXIT_BROKER_ERROR = 1
EXIT_CONFIG_ERROR = 2


def initialize_log(logging_level):
    """
    Python custom logging initialization

    Current timestamp is added to be able to identify in docker
    compose logs the date when the log has arrived
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(message)s",
        level=logging_level,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Publish to or consume from a RabbitMQ fanout exchange"
    )
    parser.add_argument(
        "--config", default="config.ini", help="path to the config file"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    publish_parser = subparsers.add_parser(
        "publish", help="publish messages to the exchange"
    )
    publish_parser.add_argument("messages", nargs="+")

    consume_parser = subparsers.add_parser(
        "consume", help="consume messages from an exclusive queue bound to the exchange"
    )
    consume_parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="stop after this many deliveries (default: run until stopped)",
    )
    return parser.parse_args(argv)


def run_publish(session, exchange, messages):
    session.declare_exchange(exchange)
    for message in messages:
        session.publish(exchange, message)
    logging.info(
        "action: publish_messages | result: success | exchange: %s | count: %d",
        exchange,
        len(messages),
    )


def run_consume(session, exchange, count=None):
    queue = session.subscribe(exchange)

    monitor = ShutdownMonitor(session.stop_consuming)
    monitor.start()
    signal.signal(signal.SIGTERM, monitor.request_shutdown)
    signal.signal(signal.SIGINT, monitor.request_shutdown)

    received = 0
    deliveries = session.consume(queue)
    try:
        for delivery in deliveries:
            received += 1
            logging.info(
                "action: message_received | result: success | queue: %s | body: %s",
                queue.name,
                delivery.body.decode("utf-8", errors="replace"),
            )
            if count is not None and received >= count:
                break
    finally:
        deliveries.close()

    logging.info(
        "action: consume_messages | result: success | queue: %s | count: %d",
        queue.name,
        received,
    )


def main(argv=None):
    args = parse_args(argv)

    try:
        client_config, broker_config = initialize_config(args.config)
    except KeyError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ValueError as e:
        print(f"Configuration Parse Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    initialize_log(client_config.logging_level)
    logging.debug(
        "action: config | result: success | host: %s | port: %s | exchange: %s | logging_level: %s",
        broker_config.host,
        broker_config.port,
        client_config.exchange,
        client_config.logging_level,
    )

    session = QueueConnection.from_config(broker_config)
    try:
        session.connect()
        session.open_channel()
        if args.command == "publish":
            run_publish(session, client_config.exchange, args.messages)
        else:
            run_consume(session, client_config.exchange, args.count)
    except QueueError as e:
        logging.error("action: %s | result: fail | error: %s", args.command, e)
        print(f"Broker Error: {e}", file=sys.stderr)
        return EXIT_BROKER_ERROR
    finally:
        if session.connection is not None and session.connection.is_open:
            try:
                session.close()
            except QueueError as e:
                logging.error("action: session_close | result: fail | error: %s", e)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
