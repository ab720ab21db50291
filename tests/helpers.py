import queue as pyqueue
import threading
import time
import uuid
from types import SimpleNamespace

from pika.exceptions import (
    ChannelClosedByBroker,
    ChannelWrongStateError,
    ConnectionWrongStateError,
)

from rabbitqueue.errors import QueueError

# Every variable initialize_config reads from the environment
CONFIG_ENV_KEYS = [
    "RABBITMQ_HOST",
    "RABBITMQ_PORT",
    "RABBITMQ_USER",
    "RABBITMQ_PASSWORD",
    "RABBITMQ_HEARTBEAT",
    "RABBITMQ_CONNECTION_TIMEOUT",
    "RABBITMQ_PUBLISH_TIMEOUT",
    "RABBITMQ_CONSUME_INACTIVITY_TIMEOUT",
    "EXCHANGE",
    "LOGGING_LEVEL",
]


# --------- Consumer runner for broker tests ----------


class ConsumerRunner:
    """
    Iterates a QueueConnection's deliveries in a separate thread, putting
    each decoded body in self.messages (queue.Queue).
    """

    def __init__(self, session, queue=None):
        self.session = session
        self.queue = queue
        self.messages = pyqueue.Queue()
        self.errors = pyqueue.Queue()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._started = threading.Event()
        self._stopped = threading.Event()

    def _run(self):
        self._started.set()
        try:
            for delivery in self.session.consume(self.queue):
                self.messages.put(delivery.body.decode())
        except QueueError as e:
            self.errors.put(e)
        finally:
            self._stopped.set()

    def start(self):
        self._thread.start()
        if not self._started.wait(timeout=2.0):
            raise RuntimeError("Consumer did not start in time")

    def stop(self, timeout=5.0):
        self.session.stop_consuming()
        return self._stopped.wait(timeout=timeout)

    def join(self):
        self._thread.join(timeout=5.0)


def unique_name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


def wait_until(predicate, timeout: float, check_interval: float = 0.05) -> bool:
    """
    Evaluate predicate() every check_interval until timeout.
    Returns True if it held, False if time ran out.
    """
    end = time.time() + timeout
    while time.time() < end:
        if predicate():
            return True
        time.sleep(check_interval)
    return False


# --------- In-memory stand-ins for pika's blocking handles ----------


def make_delivery_frame(body, exchange="events", delivery_tag=1, consumer_tag="ctag-1"):
    method = SimpleNamespace(
        exchange=exchange,
        routing_key="",
        delivery_tag=delivery_tag,
        redelivered=False,
        consumer_tag=consumer_tag,
    )
    properties = SimpleNamespace(content_type="text/html")
    return method, properties, body


class FakeTimer:
    def __init__(self, deadline, callback):
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeImpl:
    """
    Stands in for the connection's ioloop side: timers fire from
    process_timeouts(), and a terminated stream closes the connection
    with the given error the way pika does.
    """

    def __init__(self, connection):
        self.connection = connection
        self.timers = []
        self.error = None

    def _adapter_call_later(self, delay, callback):
        timer = FakeTimer(time.monotonic() + delay, callback)
        self.timers.append(timer)
        return timer

    def _adapter_remove_timeout(self, timer):
        timer.cancel()

    def _terminate_stream(self, error):
        self.error = error
        self.connection.is_open = False
        for channel in self.connection.channels:
            channel.is_open = False

    def process_timeouts(self):
        now = time.monotonic()
        for timer in list(self.timers):
            if not timer.cancelled and timer.deadline <= now:
                timer.cancelled = True
                timer.callback()

    @property
    def pending_timers(self):
        return [timer for timer in self.timers if not timer.cancelled]


class FakeChannel:
    """Records calls and mimics pika's channel state rules"""

    def __init__(self, channel_number=1, exchanges=None, connection=None):
        self.channel_number = channel_number
        self.connection = connection
        self.is_open = True
        self.exchanges = exchanges if exchanges is not None else {}
        self.calls = []
        self.frames = []
        self.cancelled = False
        self._queue_seq = 0
        # operation name -> seconds it blocks before answering
        self.stalls = {}

    @property
    def is_closed(self):
        return not self.is_open

    def _check_open(self):
        if not self.is_open:
            raise ChannelWrongStateError("Channel is closed.")

    def _stall(self, operation):
        """
        Block like pika flushing output to a peer that does not read: run
        due timers until the stall ends or the stream is torn down.
        """
        seconds = self.stalls.get(operation)
        if seconds is None:
            return
        impl = self.connection._impl
        end = time.monotonic() + seconds
        while time.monotonic() < end:
            impl.process_timeouts()
            if impl.error is not None:
                raise impl.error
            time.sleep(0.01)

    def _closed_by_broker(self, code, text):
        self.is_open = False
        raise ChannelClosedByBroker(code, text)

    def exchange_declare(self, **kwargs):
        self._check_open()
        self.calls.append(("exchange_declare", kwargs))
        self._stall("exchange_declare")
        name = kwargs["exchange"]
        existing = self.exchanges.get(name)
        if existing is not None and existing != kwargs["exchange_type"]:
            self._closed_by_broker(
                406, f"PRECONDITION_FAILED - inequivalent arg 'type' for exchange '{name}'"
            )
        self.exchanges[name] = kwargs["exchange_type"]

    def queue_declare(self, **kwargs):
        self._check_open()
        self.calls.append(("queue_declare", kwargs))
        self._stall("queue_declare")
        self._queue_seq += 1
        method = SimpleNamespace(
            queue=f"amq.gen-{self.channel_number}-{self._queue_seq}",
            message_count=0,
            consumer_count=0,
        )
        return SimpleNamespace(method=method)

    def queue_bind(self, **kwargs):
        self._check_open()
        self.calls.append(("queue_bind", kwargs))
        self._stall("queue_bind")
        if kwargs["exchange"] not in self.exchanges:
            self._closed_by_broker(
                404, f"NOT_FOUND - no exchange '{kwargs['exchange']}'"
            )

    def basic_publish(self, **kwargs):
        self._check_open()
        self.calls.append(("basic_publish", kwargs))
        self._stall("basic_publish")

    def consume(self, **kwargs):
        self._check_open()
        self.calls.append(("consume", kwargs))
        return iter(self.frames)

    def cancel(self):
        self.cancelled = True
        return 0

    def close(self):
        self._check_open()
        self.is_open = False


class FakeConnection:
    def __init__(self):
        self.is_open = True
        self.channels = []
        self.exchanges = {}
        self.callbacks = []
        self._impl = FakeImpl(self)

    @property
    def is_closed(self):
        return not self.is_open

    def channel(self):
        if not self.is_open:
            raise ConnectionWrongStateError("Connection is closed.")
        channel = FakeChannel(
            len(self.channels) + 1, exchanges=self.exchanges, connection=self
        )
        self.channels.append(channel)
        return channel

    def add_callback_threadsafe(self, callback):
        self.callbacks.append(callback)
        callback()

    def close(self):
        if not self.is_open:
            raise ConnectionWrongStateError("Connection is closed.")
        for channel in self.channels:
            channel.is_open = False
        self.is_open = False
