# Broker-visible constants shared by the facade and the entry point
import logging


FANOUT_EXCHANGE_TYPE = "fanout"
CONTENT_TYPE = "text/html"
AMQP_SCHEME = "amqp"

HEARTBEAT = 600  # 10 minutes
PUBLISH_TIMEOUT = 5  # seconds
CONNECTION_TIMEOUT = 10  # seconds
CONSUME_INACTIVITY_TIMEOUT = 1  # seconds between cancellation checks

logger = logging.getLogger(__name__)


def log_action(
    action, result, level=logging.INFO, error=None, extra_fields=None, log=None
):
    """
    Centralized logging function for consistent log format

    Args:
        action: The action being performed
        result: The result of the action (success, fail, etc.)
        level: Logging level (INFO, ERROR, DEBUG, etc.)
        error: Optional error information
        extra_fields: Optional dict with additional fields to log (e.g., exchange, etc.)
        log: Logger to write to; the module logger is used when omitted
    """
    log_parts = [
        f"action: {action}",
        f"result: {result}",
    ]

    if extra_fields:
        for key, value in extra_fields.items():
            log_parts.append(f"{key}: {value}")

    if error:
        log_parts.append(f"error: {error}")

    log_message = " | ".join(log_parts)
    (log or logger).log(level, log_message)
