import logging

from common.config import BrokerConfig
from common.utils import (
    CONNECTION_TIMEOUT,
    CONSUME_INACTIVITY_TIMEOUT,
    HEARTBEAT,
    PUBLISH_TIMEOUT,
    log_action,
)
from rabbitqueue import facade
from rabbitqueue.errors import (
    BindError,
    CloseError,
    ConsumeError,
    DeclareError,
    PublishError,
    QueueChannelError,
)


class QueueConnection:
    """
    Session over one broker connection.

    Holds the connection parameters and accumulates the handles produced by
    each step: connection, then channel, then the declared queue. A session
    is meant for a single owner thread; only stop_consuming() may be called
    from another thread.

    Usage:
        session = QueueConnection.from_parameters("localhost", 5672, "guest", "guest")
        session.connect()
        session.open_channel()
        session.subscribe("events")
        for delivery in session.consume():
            ...
        session.close()
    """

    def __init__(
        self,
        host,
        port,
        username,
        password,
        heartbeat=HEARTBEAT,
        connection_timeout=CONNECTION_TIMEOUT,
        publish_timeout=PUBLISH_TIMEOUT,
        consume_inactivity_timeout=CONSUME_INACTIVITY_TIMEOUT,
        logger=None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.heartbeat = heartbeat
        self.connection_timeout = connection_timeout
        self.publish_timeout = publish_timeout
        self.consume_inactivity_timeout = consume_inactivity_timeout
        self.logger = logger or logging.getLogger(__name__)

        self.connection = None
        self.channel = None
        self.queue = None

    @classmethod
    def from_parameters(cls, host, port, username, password, logger=None):
        """Session holding only the connection parameters; nothing is dialed yet"""
        return cls(host, port, username, password, logger=logger)

    @classmethod
    def from_config(cls, broker_config: BrokerConfig, logger=None):
        return cls(
            broker_config.host,
            broker_config.port,
            broker_config.username,
            broker_config.password,
            heartbeat=broker_config.heartbeat,
            connection_timeout=broker_config.connection_timeout,
            publish_timeout=broker_config.publish_timeout,
            consume_inactivity_timeout=broker_config.consume_inactivity_timeout,
            logger=logger,
        )

    def __repr__(self):
        return (
            f"QueueConnection(host={self.host!r}, port={self.port!r}, "
            f"username={self.username!r}, connected={self.is_connected()})"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.connection is not None and self.connection.is_open:
            self.close()
        return False

    def connect(self):
        """Dial the broker and keep the connection on this session"""
        self.connection = facade.connect(
            self.host,
            self.port,
            self.username,
            self.password,
            heartbeat=self.heartbeat,
            publish_timeout=self.publish_timeout,
            connection_timeout=self.connection_timeout,
            logger=self.logger,
        )
        return self.connection

    def open_channel(self):
        if self.connection is None:
            raise QueueChannelError("open_channel", "not connected")
        self.channel = facade.open_channel(self.connection, logger=self.logger)
        return self.channel

    def _require_channel(self, operation, error_class):
        if self.channel is None:
            raise error_class(operation, "no channel open")
        return self.channel

    def declare_exchange(self, name):
        channel = self._require_channel("declare_exchange", DeclareError)
        facade.declare_exchange(
            channel, name, timeout=self.connection_timeout, logger=self.logger
        )

    def declare_queue(self):
        channel = self._require_channel("declare_queue", DeclareError)
        self.queue = facade.declare_queue(
            channel, timeout=self.connection_timeout, logger=self.logger
        )
        return self.queue

    def bind_queue(self, exchange, queue=None):
        """Bind queue (the session's declared queue by default) to exchange"""
        channel = self._require_channel("bind_queue", BindError)
        queue = queue or self.queue
        if queue is None:
            raise BindError("bind_queue", "no queue declared")
        facade.bind_queue(
            channel, queue, exchange, timeout=self.connection_timeout, logger=self.logger
        )

    def subscribe(self, exchange):
        """Declare exchange, declare an exclusive queue and bind them"""
        self.declare_exchange(exchange)
        queue = self.declare_queue()
        self.bind_queue(exchange, queue)
        return queue

    def publish(self, exchange, body):
        channel = self._require_channel("publish", PublishError)
        facade.publish(
            channel, exchange, body, timeout=self.publish_timeout, logger=self.logger
        )

    def consume(self, queue=None):
        """
        Iterate deliveries from queue (the session's declared queue by default).

        Deliveries are auto-acknowledged: at-most-once, a message being
        processed when the caller crashes is lost.
        """
        channel = self._require_channel("consume", ConsumeError)
        queue = queue or self.queue
        if queue is None:
            raise ConsumeError("consume", "no queue declared")
        return facade.consume(
            channel,
            queue,
            inactivity_timeout=self.consume_inactivity_timeout,
            logger=self.logger,
        )

    def stop_consuming(self):
        """Cancel the active consumer from any thread; consume() then ends"""
        if not self.is_connected():
            return

        def _cancel():
            if self.channel and self.channel.is_open:
                self.channel.cancel()

        self.connection.add_callback_threadsafe(_cancel)
        log_action("stop_consuming", "in_progress", log=self.logger)

    def close_channel(self):
        """
        Close the session's channel and forget the queue declared on it.
        Closing it a second time raises CloseError.
        """
        channel = self._require_channel("channel_close", CloseError)
        self.queue = None
        facade.close_channel(channel, logger=self.logger)

    def close(self):
        """
        Close channel (if still open) and connection.
        Closing an already closed session raises CloseError.
        """
        if self.connection is None:
            raise CloseError("connection_close", "not connected")
        if self.channel is not None and self.channel.is_open:
            self.close_channel()

        facade.close_connection(self.connection, logger=self.logger)
        log_action("session_close", "success", log=self.logger)

    def is_connected(self):
        """Check if this session's channel and connection are active"""
        return bool(
            self.channel
            and self.channel.is_open
            and self.connection
            and self.connection.is_open
        )


def init_queue_connection(broker_config: BrokerConfig, logger=None):
    """Build a session from configuration and connect it"""
    session = QueueConnection.from_config(broker_config, logger=logger)
    session.connect()
    return session
