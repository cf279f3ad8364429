"""
Connection to the carbon collector.
"""
import logging
import socket
from typing import List, Optional, Tuple

from retrying import retry

from . import config

logger = logging.getLogger(__name__)


class CollectorConnection:
    """
    Single outbound TCP connection to the collector.

    The socket is opened lazily by ensure_connected() and kept across flushes.
    There is no health check: a failed write is the only sign of a dead
    connection, and it closes the socket so the next ensure_connected()
    resolves and connects from scratch.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        connect_timeout: Optional[float] = None,
        send_timeout: Optional[float] = None,
        resolve_retries: Optional[int] = None,
        resolve_retry_delay: Optional[float] = None
    ):
        """
        Initialize the connection.

        Args:
            host (str, optional): Collector host name or address. Defaults to config.HOST.
            port (int, optional): Collector port. Defaults to config.PORT.
            connect_timeout (float, optional): Seconds allowed per connect attempt. Defaults to config.CONNECT_TIMEOUT.
            send_timeout (float, optional): Seconds allowed for a write to make progress. Defaults to config.SEND_TIMEOUT.
            resolve_retries (int, optional): Attempts for a transient resolution failure. Defaults to config.RESOLVE_RETRIES.
            resolve_retry_delay (float, optional): Seconds between those attempts. Defaults to config.RESOLVE_RETRY_DELAY.
        """
        self.host = host or config.HOST
        self.port = port or config.PORT
        self.connect_timeout = connect_timeout if connect_timeout is not None else config.CONNECT_TIMEOUT
        self.send_timeout = send_timeout if send_timeout is not None else config.SEND_TIMEOUT
        self.resolve_retries = resolve_retries or config.RESOLVE_RETRIES
        self.resolve_retry_delay = (
            resolve_retry_delay if resolve_retry_delay is not None else config.RESOLVE_RETRY_DELAY
        )

        self.sock: Optional[socket.socket] = None

    @property
    def connected(self) -> bool:
        return self.sock is not None

    def _retry_if_transient_resolution_error(self, exception: Exception) -> bool:
        """
        Return True if name resolution should be retried (temporary DNS failure).

        Args:
            exception (Exception): The exception to check

        Returns:
            bool: True if we should retry, False otherwise
        """
        return isinstance(exception, socket.gaierror) and exception.errno == socket.EAI_AGAIN

    def _resolve(self) -> List[Tuple]:
        """Resolve the collector address for both address families."""

        @retry(
            retry_on_exception=self._retry_if_transient_resolution_error,
            stop_max_attempt_number=self.resolve_retries,
            wait_fixed=int(self.resolve_retry_delay * 1000)  # milliseconds
        )
        def _getaddrinfo():
            return socket.getaddrinfo(
                self.host, self.port, socket.AF_UNSPEC, socket.SOCK_STREAM, socket.IPPROTO_TCP
            )

        return _getaddrinfo()

    def ensure_connected(self) -> Optional[socket.socket]:
        """
        Return the live socket, connecting first if there is none.

        Each resolved address is tried in order until one accepts the
        connection.

        Returns:
            socket: The connected socket, or None if every attempt failed
        """
        if self.sock is not None:
            return self.sock

        try:
            addresses = self._resolve()
        except socket.gaierror as e:
            logger.warning("Failed to resolve %s:%s: %s", self.host, self.port, str(e))
            return None

        for family, socktype, proto, _, sockaddr in addresses:
            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as e:
                logger.debug("Could not create socket for %s: %s", sockaddr, str(e))
                continue

            try:
                sock.settimeout(self.connect_timeout)
                sock.connect(sockaddr)
            except OSError as e:
                logger.debug("Connection to %s failed: %s", sockaddr, str(e))
                sock.close()
                continue

            sock.settimeout(self.send_timeout)
            self.sock = sock
            logger.info("Connected to collector at %s:%s (%s)", self.host, self.port, sockaddr[0])
            return sock

        logger.warning("Could not connect to collector at %s:%s", self.host, self.port)
        return None

    def send(self, data: bytes) -> bool:
        """
        Write a whole frame to the collector.

        Args:
            data (bytes): The frame to send

        Returns:
            bool: True if every byte was written, False otherwise
        """
        if self.sock is None:
            return False

        try:
            self.sock.sendall(data)
            return True
        except OSError as e:
            logger.error("Failed to send %d bytes to %s:%s: %s", len(data), self.host, self.port, str(e))
            self.close()
            return False

    def close(self) -> None:
        """Close the socket, if any."""
        if self.sock is None:
            return
        try:
            self.sock.close()
        except OSError as e:
            logger.debug("Error closing collector socket: %s", str(e))
        finally:
            self.sock = None
