from __future__ import annotations

from typing import List

from .models import ConfigError


def parse_port(value: str, which: str) -> int:
    """
    Parses one port bound ("start" or "end").
    Range checks belong to ScanConfig; this only rejects what is not a port number at all.
    """
    value = value.strip()
    # ASCII digits only: int() would also take "8_0", "+80" and non-ASCII digits
    if not (value.isascii() and value.isdigit()):
        raise ConfigError(f"failed to parse {which} port number")
    return int(value)


def stride_ports(start_port: int, end_port: int, worker_count: int, index: int) -> range:
    """
    Ports owned by worker `index`:
    start_port + index, start_port + index + worker_count, ... up to end_port.
    """
    if worker_count < 1:
        raise ConfigError("failed to parse thread number")
    if not 0 <= index < worker_count:
        raise ValueError(f"worker index {index} outside [0, {worker_count})")
    return range(start_port + index, end_port + 1, worker_count)


def partition(start_port: int, end_port: int, worker_count: int) -> List[range]:
    # One entry per worker; trailing workers get empty ranges when worker_count exceeds the port count
    return [stride_ports(start_port, end_port, worker_count, i) for i in range(worker_count)]
