import logging
import socket
import threading

import pytest

from portstride.logger import LOGGER_NAME


class FakeProbe:
    """Stands in for probe_port: reports `open_ports` as open and records every attempt."""

    def __init__(self, open_ports=()):
        self.open_ports = set(open_ports)
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, target, port, timeout_s):
        with self._lock:
            self.calls.append(port)
        return port in self.open_ports


@pytest.fixture(autouse=True)
def _reset_package_logger():
    # create_logger binds a handler to whatever sys.stderr is at the time (capsys swaps it)
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_probe():
    return FakeProbe


@pytest.fixture
def listener():
    """Opens listening sockets on 127.0.0.1 and returns their ports."""
    socks = []

    def _open() -> int:
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        s.bind(("127.0.0.1", 0))
        s.listen(16)
        socks.append(s)
        return s.getsockname()[1]

    yield _open

    for s in socks:
        s.close()


@pytest.fixture
def closed_port():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture
def port_block():
    """
    Reserves `size` consecutive loopback ports by binding them without listening.
    A bound, non-listening port refuses connections, so it reads as closed until
    the test calls listen() on it.
    """
    held = []

    def _reserve(size: int):
        for _ in range(50):
            first = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            first.bind(("127.0.0.1", 0))
            base = first.getsockname()[1]
            socks = [first]
            if base + size - 1 > 65535:
                first.close()
                continue
            try:
                for port in range(base + 1, base + size):
                    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                    socks.append(s)
                    s.bind(("127.0.0.1", port))
            except OSError:
                for s in socks:
                    s.close()
                continue
            held.extend(socks)
            return socks
        pytest.skip(f"no block of {size} free loopback ports")

    yield _reserve

    for s in held:
        s.close()
