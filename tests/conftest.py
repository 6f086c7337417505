import socket
import threading

import pytest


class LoopbackListener:
    """A TCP listener on 127.0.0.1 that optionally greets each client with a banner."""

    def __init__(self, banner: bytes = b""):
        self.banner = banner
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server.bind(("127.0.0.1", 0))
        self.server.listen(32)
        self.server.settimeout(0.05)
        self.port = self.server.getsockname()[1]
        self.connections = []
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.server.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            self.connections.append(conn)
            if self.banner:
                try:
                    conn.sendall(self.banner)
                except OSError:
                    pass

    def close(self):
        self._stop.set()
        self._thread.join(timeout=1)
        for conn in self.connections:
            conn.close()
        self.server.close()


@pytest.fixture
def tcp_listener():
    listeners = []

    def _start(banner: bytes = b"") -> LoopbackListener:
        listener = LoopbackListener(banner)
        listeners.append(listener)
        return listener

    yield _start
    for listener in listeners:
        listener.close()


@pytest.fixture
def closed_port():
    """A loopback port that nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return port


@pytest.fixture(autouse=True)
def clean_scanner_env(monkeypatch):
    for name in ("NETSEC_SCANNER_PORTS", "NETSEC_SCANNER_THREADS", "NETSEC_SCANNER_TIMEOUT",
                 "NETSEC_SCANNER_LOG_FILE", "NETSEC_SCANNER_PROFILES_FILE", "NETSEC_SCANNER_MAX_THREADS",
                 "API_KEY"):
        monkeypatch.delenv(name, raising=False)
