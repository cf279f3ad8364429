"""
Background pusher that ships queued samples to carbon.
"""
import logging
import threading
import time
from typing import Optional

from . import config
from .connection import CollectorConnection
from .encoder import build_message
from .sample import SampleQueue

logger = logging.getLogger(__name__)


class GraphitePusher:
    """
    Queues samples from any thread and flushes them to carbon on a fixed
    interval from a single background thread.

    Delivery is at least once: a batch that fails to send is put back at the
    front of the queue and goes out again on a later flush.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        frequency: Optional[float] = None,
        max_queue_size: Optional[int] = None,
        overflow: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        send_timeout: Optional[float] = None
    ):
        """
        Initialize the pusher. Nothing is sent until start() is called.

        Args:
            host (str, optional): Collector host. Defaults to config.HOST.
            port (int, optional): Collector pickle port. Defaults to config.PORT.
            frequency (float, optional): Flushes per minute. Defaults to config.FREQUENCY.
            max_queue_size (int, optional): Queue capacity, None for unbounded. Defaults to config.MAX_QUEUE_SIZE.
            overflow (str, optional): 'drop_oldest' or 'reject'. Defaults to config.OVERFLOW_POLICY.
            connect_timeout (float, optional): Seconds per connect attempt. Defaults to config.CONNECT_TIMEOUT.
            send_timeout (float, optional): Seconds a write may stall. Defaults to config.SEND_TIMEOUT.
        """
        self.set_frequency(frequency if frequency is not None else config.FREQUENCY)

        self.queue = SampleQueue(
            max_size=max_queue_size if max_queue_size is not None else config.MAX_QUEUE_SIZE,
            overflow=overflow,
        )
        self.connection = CollectorConnection(
            host=host,
            port=port,
            connect_timeout=connect_timeout,
            send_timeout=send_timeout,
        )

        self.running = False
        self.thread: Optional[threading.Thread] = None
        self._wakeup = threading.Event()
        self._lifecycle_lock = threading.Lock()

    @property
    def host(self) -> str:
        return self.connection.host

    @property
    def port(self) -> int:
        return self.connection.port

    @property
    def interval(self) -> float:
        """Seconds between flushes."""
        return 60.0 / self.frequency

    @property
    def join_timeout(self) -> float:
        """Seconds stop() waits for the flush thread to exit."""
        return max(config.JOIN_TIMEOUT, self.connection.connect_timeout, self.connection.send_timeout) + 1

    def set_frequency(self, frequency: float) -> None:
        """
        Set how many flushes happen per minute. Takes effect from the next sleep.

        Args:
            frequency (float): Flushes per minute, must be positive
        """
        if frequency <= 0:
            raise ValueError(f"Frequency must be positive, got {frequency}")
        self.frequency = float(frequency)

    def push_sample(self, path: str, value: float, timestamp: Optional[int] = None) -> bool:
        """
        Queue a sample for the next flush. Never blocks on the network.

        Args:
            path (str): Metric path, e.g. 'servers.web1.cpu'
            value (float): Sample value
            timestamp (int, optional): Seconds since the epoch. Defaults to now.

        Returns:
            bool: True if the sample was queued, False if a full queue rejected it
        """
        return self.queue.push(path, value, timestamp)

    enqueue = push_sample

    def get_queued_count(self) -> int:
        """
        Get the number of samples waiting for a flush.

        Returns:
            int: Number of queued samples
        """
        return len(self.queue)

    def start(self) -> None:
        """Start the flush thread."""
        with self._lifecycle_lock:
            if self.running:
                logger.warning("Graphite pusher already running")
                return

            self.running = True
            self._wakeup.clear()
            self.thread = threading.Thread(target=self._run, name='graphite-pusher', daemon=True)
            self.thread.start()
        logger.info("Graphite pusher started for %s:%s, flushing every %.2f seconds",
                    self.host, self.port, self.interval)

    def stop(self) -> None:
        """
        Stop the flush thread and wait for it to exit. A send in progress is
        allowed to finish first.
        """
        with self._lifecycle_lock:
            if not self.running:
                logger.warning("Graphite pusher not running")
                return

            logger.info("Stopping graphite pusher")
            self.running = False
            self._wakeup.set()
            thread, self.thread = self.thread, None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.join_timeout)
            if thread.is_alive():
                logger.warning("Graphite pusher thread did not stop cleanly")

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Wait until the queue has been flushed and no batch is in flight, then stop.

        Args:
            timeout (float, optional): Give up waiting after this many seconds. Waits forever by default.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        while not self.queue.is_idle():
            thread = self.thread
            if thread is None or not thread.is_alive():
                logger.warning("Graphite pusher is not running, not waiting for the queue")
                break
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning("Timed out waiting for queue to drain")
                break
            time.sleep(config.SHUTDOWN_POLL_INTERVAL)

        if self.running:
            self.stop()

        queued_count = self.get_queued_count()
        if queued_count:
            logger.warning("Graphite pusher shut down with %d samples unsent", queued_count)

    def flush(self) -> bool:
        """
        Run one flush: connect if needed, then drain, encode and send.

        Returns:
            bool: True if a batch was delivered, False otherwise
        """
        if self.connection.ensure_connected() is None:
            return False

        samples = self.queue.drain_all()
        if not samples:
            return False

        try:
            delivered = self.connection.send(build_message(samples))
        except Exception:
            self.queue.requeue(samples)
            raise

        if not delivered:
            self.queue.requeue(samples)
            logger.warning("Requeued %d samples after failed send", len(samples))
            return False

        self.queue.release(samples)
        logger.debug("Sent %d samples to %s:%s", len(samples), self.host, self.port)
        return True

    def _run(self) -> None:
        logger.debug("Graphite pusher loop started")
        try:
            while self.running:
                try:
                    self.flush()
                except Exception:
                    logger.exception("Unexpected error in graphite pusher loop")

                self._wakeup.wait(self.interval)
        finally:
            self.connection.close()
            logger.debug("Graphite pusher loop exited")

    def __enter__(self) -> 'GraphitePusher':
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.shutdown()


# Singleton instance for easy import - created on first use
default_pusher = None


def ensure_default_pusher() -> GraphitePusher:
    global default_pusher
    if default_pusher is None:
        default_pusher = GraphitePusher()
    return default_pusher


def configure(**kwargs) -> GraphitePusher:
    """
    Replace the default pusher with one built from these arguments.
    A running default pusher is stopped first.

    Args:
        **kwargs: Arguments for GraphitePusher

    Returns:
        GraphitePusher: The new default pusher
    """
    global default_pusher
    if default_pusher is not None and default_pusher.running:
        default_pusher.stop()
    default_pusher = GraphitePusher(**kwargs)
    return default_pusher


def push_sample(path: str, value: float, timestamp: Optional[int] = None) -> bool:
    """
    Queue a sample on the default pusher.

    Args:
        path (str): Metric path
        value (float): Sample value
        timestamp (int, optional): Seconds since the epoch. Defaults to now.

    Returns:
        bool: True if the sample was queued
    """
    return ensure_default_pusher().push_sample(path, value, timestamp)


def start() -> GraphitePusher:
    """Start the default pusher."""
    pusher = ensure_default_pusher()
    pusher.start()
    return pusher


def stop() -> None:
    """Stop the default pusher without waiting for the queue."""
    if default_pusher is not None and default_pusher.running:
        default_pusher.stop()


def shutdown(timeout: Optional[float] = None) -> None:
    """Flush and stop the default pusher."""
    if default_pusher is not None:
        default_pusher.shutdown(timeout)


def get_queued_count() -> int:
    """
    Get the number of samples queued on the default pusher.

    Returns:
        int: Number of queued samples
    """
    if default_pusher is None:
        return 0
    return default_pusher.get_queued_count()
