"""
RabbitMQ fanout helpers over pika's blocking client.

This package provides a thin facade for RabbitMQ operations:
- facade: one function per broker operation (connect, open_channel,
  declare_exchange, declare_queue, bind_queue, publish, consume, close)
- QueueConnection: session that accumulates connection, channel and queue
- errors: typed failures, one per operation kind

Usage:
    session = init_queue_connection(broker_config)
    session.open_channel()
    session.subscribe("events")      # fanout exchange + exclusive queue + bind
    session.publish("events", "hello")
    for delivery in session.consume():
        print(delivery.body)

Consumers auto-acknowledge, so delivery is at-most-once.
"""

from .errors import (
    BindError,
    CloseError,
    ConsumeError,
    DeclareError,
    PublishError,
    PublishTimeoutError,
    QueueChannelError,
    QueueConnectionError,
    QueueError,
)
from .facade import Delivery, QueueDescriptor
from .connection import QueueConnection, init_queue_connection

__all__ = [
    "QueueConnection",
    "init_queue_connection",
    "QueueDescriptor",
    "Delivery",
    "QueueError",
    "QueueConnectionError",
    "QueueChannelError",
    "DeclareError",
    "BindError",
    "PublishError",
    "PublishTimeoutError",
    "ConsumeError",
    "CloseError",
]
