class QueueError(Exception):
    """
    Base error for every failed broker operation.

    Carries the name of the operation that failed so callers can decide
    whether to retry, escalate or shut down. The underlying pika exception
    is chained as __cause__.
    """

    def __init__(self, operation, error):
        super().__init__(f"{operation}: {error}")
        self.operation = operation
        self.error = error


class QueueConnectionError(QueueError):
    pass


class QueueChannelError(QueueError):
    pass


class DeclareError(QueueError):
    pass


class BindError(QueueError):
    pass


class PublishError(QueueError):
    pass


class PublishTimeoutError(PublishError):
    pass


class ConsumeError(QueueError):
    pass


class CloseError(QueueError):
    pass
