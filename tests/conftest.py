import pickle
import socket
import struct
import threading
import time
from typing import Callable, List, Tuple

import pytest

from graphite_pusher import pusher as pusher_module


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeCarbon:
    """
    Minimal carbon pickle receiver: accepts connections, reads length-prefixed
    frames and keeps every decoded (path, (timestamp, value)) record.
    """

    def __init__(self):
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server.bind(('127.0.0.1', 0))
        self.server.listen(8)
        self.server.settimeout(0.1)
        self.port = self.server.getsockname()[1]

        self.frames: List[bytes] = []
        self.records: List[Tuple[str, Tuple[int, float]]] = []
        self.connections = 0
        self._lock = threading.Lock()
        self._running = True
        self._threads: List[threading.Thread] = []
        self._accept_thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._accept_thread.start()

    def _accept_loop(self):
        while self._running:
            try:
                conn, _ = self.server.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with self._lock:
                self.connections += 1
            t = threading.Thread(target=self._handle, args=(conn,), daemon=True)
            t.start()
            self._threads.append(t)

    def _handle(self, conn: socket.socket):
        conn.settimeout(0.1)
        buffered = b''
        with conn:
            while self._running:
                try:
                    chunk = conn.recv(65536)
                except socket.timeout:
                    continue
                except OSError:
                    return
                if not chunk:
                    return
                buffered += chunk

                while len(buffered) >= 4:
                    (length,) = struct.unpack('!I', buffered[:4])
                    if len(buffered) < 4 + length:
                        break
                    frame, buffered = buffered[:4 + length], buffered[4 + length:]
                    with self._lock:
                        self.frames.append(frame)
                        self.records.extend(pickle.loads(frame[4:]))

    def received(self) -> List[Tuple[str, Tuple[int, float]]]:
        with self._lock:
            return list(self.records)

    def close(self):
        self._running = False
        self.server.close()
        self._accept_thread.join(timeout=2)
        for t in self._threads:
            t.join(timeout=2)


@pytest.fixture
def carbon():
    server = FakeCarbon()
    yield server
    server.close()


@pytest.fixture
def unused_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture(autouse=True)
def reset_default_pusher():
    yield
    if pusher_module.default_pusher is not None and pusher_module.default_pusher.running:
        pusher_module.default_pusher.stop()
    pusher_module.default_pusher = None
