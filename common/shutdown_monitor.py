import logging
import queue
import threading


class ShutdownMonitor(threading.Thread):
    """
    Waits on a shutdown queue and runs the shutdown callback in its own thread.

    Signal handlers only enqueue; the callback (stopping a consumer) runs
    here, outside the interrupted frame of the consuming thread.
    """

    def __init__(self, shutdown_callback, shutdown_queue=None, logger=None):
        super().__init__(name="ShutdownMonitor", daemon=True)
        self.shutdown_queue = shutdown_queue or queue.Queue(maxsize=5)
        self.shutdown_callback = shutdown_callback
        self.logger = logger or logging.getLogger(__name__)

    def request_shutdown(self, signum=None, frame=None):
        """Usable directly as a signal handler"""
        try:
            self.shutdown_queue.put_nowait(signum)
        except queue.Full:
            self.logger.debug(
                "action: request_shutdown | result: skipped | msg: shutdown already requested"
            )

    def run(self):
        self.logger.debug("action: shutdown_monitor_start | result: success")

        # Block until a shutdown request arrives
        signum = self.shutdown_queue.get(block=True)
        self.logger.info(
            "action: shutdown_signal_received | result: success | signal: %s", signum
        )

        try:
            if self.shutdown_callback:
                self.shutdown_callback()
        except Exception as e:
            self.logger.error(
                "action: shutdown_monitor | result: fail | msg: shutdown callback failed | error: %s",
                e,
            )
