from __future__ import annotations

import ipaddress
import logging
import queue
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Callable, Iterator, List, Optional, Union

from .logger import log_event
from .models import ConfigError, IPAddress, ScanConfig, ScanResult
from .ports import stride_ports

logger = logging.getLogger(__name__)

ProbeFn = Callable[[IPAddress, int, float], bool]
ProgressFn = Callable[[int], None]

_CLOSED = object()


def probe_port(target: Union[IPAddress, str], port: int, timeout_s: float) -> bool:
    """
    One TCP connect attempt. Open means the handshake completed within timeout_s;
    refused, timed out, unreachable and every other connect error all read as not open.
    """
    ip = ipaddress.ip_address(str(target))
    family = socket.AF_INET6 if ip.version == 6 else socket.AF_INET
    sock: Optional[socket.socket] = None
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.settimeout(timeout_s)
        sock.connect((str(ip), port))
        return True
    except OSError:
        # socket.timeout and ConnectionRefusedError are both OSError
        return False
    finally:
        if sock:
            sock.close()


class PortChannel:
    """
    Many producers, one consumer.

    Each producer registers through producer() and releases its handle when done.
    Iteration yields sent ports and stops once every registered handle has been
    released; that is the only way the consumer learns the scan is over.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._live = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def producer(self) -> "Producer":
        with self._lock:
            if self._closed:
                raise RuntimeError("channel is closed")
            self._live += 1
        return Producer(self)

    def _put(self, port: int) -> None:
        self._queue.put(port)

    def _release(self) -> None:
        with self._lock:
            self._live -= 1
            if self._live == 0:
                self._closed = True
                self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[int]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # leave the marker for any later iteration
                self._queue.put(_CLOSED)
                return
            yield item  # type: ignore[misc]


class Producer:
    """Sending handle of a PortChannel. Owned by a single thread."""

    def __init__(self, channel: PortChannel) -> None:
        self._channel = channel
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def send(self, port: int) -> None:
        if self._released:
            raise RuntimeError("send on a released producer")
        self._channel._put(port)

    def close(self) -> None:
        if self._released:
            return
        self._released = True
        self._channel._release()

    def __enter__(self) -> "Producer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def worker(
    config: ScanConfig,
    producer: Producer,
    index: int,
    on_open: Optional[ProgressFn] = None,
    probe: ProbeFn = probe_port,
) -> None:
    found = 0
    with producer:
        for port in stride_ports(config.start_port, config.end_port, config.worker_count, index):
            if probe(config.target, port, config.timeout_s):
                logger.debug("worker %d: port %d open", index, port)
                if on_open is not None:
                    on_open(port)
                producer.send(port)
                found += 1

            # Rate limit
            if config.delay_s > 0:
                time.sleep(config.delay_s)

    log_event(logger, "worker_done", {"worker": index, "open": found}, level=logging.DEBUG)


def collect(channel: PortChannel, target: str = "") -> ScanResult:
    received: List[int] = []
    for port in channel:
        received.append(port)

    # Arrival order depends on the network; the report does not
    return ScanResult(target=target, open_ports=tuple(sorted(set(received))))


def scan(
    config: ScanConfig,
    on_open: Optional[ProgressFn] = None,
    probe: ProbeFn = probe_port,
) -> ScanResult:
    """
    Fans the port range out over config.worker_count threads (worker i takes
    every worker_count-th port starting at start_port + i) and fans the open
    ports back in through one channel. Returns once every worker has finished.
    """
    if config.start_port > config.end_port:
        raise ConfigError("port range out of bounds")
    if config.worker_count < 1:
        raise ConfigError("failed to parse thread number")

    log_event(logger, "scan_start", {
        "target": str(config.target),
        "start_port": config.start_port,
        "end_port": config.end_port,
        "workers": config.worker_count,
        "timeout_s": config.timeout_s,
        "delay_s": config.delay_s,
    })
    start_all = time.perf_counter()

    channel = PortChannel()
    own = channel.producer()

    with ThreadPoolExecutor(
        max_workers=config.worker_count,
        thread_name_prefix="portstride-worker",
    ) as pool:
        try:
            futures = [
                pool.submit(worker, config, channel.producer(), i, on_open, probe)
                for i in range(config.worker_count)
            ]
        finally:
            own.close()

        result = collect(channel, target=str(config.target))

        # Re-raise anything a worker died of (the channel is already closed)
        for fut in futures:
            fut.result()

    elapsed = time.perf_counter() - start_all
    result = replace(result, elapsed_s=round(elapsed, 4))

    log_event(logger, "scan_complete", {
        "target": result.target,
        "open": len(result),
        "elapsed_s": result.elapsed_s,
    })
    return result
