from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Iterator, Tuple, Union

MAX_PORT = 65535
MAX_THREADS = 65535
DEFAULT_THREADS = 4
DEFAULT_PORT_START = 1
DEFAULT_PORT_END = MAX_PORT

# Per-attempt connect timeout and the pause after every attempt (rate limit)
DEFAULT_TIMEOUT_S = 1.0
DEFAULT_DELAY_S = 0.05

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class ConfigError(ValueError):
    """Raised for any invalid scan parameter, before probing starts."""


@dataclass(frozen=True)
class ScanConfig:
    target: IPAddress
    start_port: int = DEFAULT_PORT_START
    end_port: int = DEFAULT_PORT_END
    worker_count: int = DEFAULT_THREADS
    timeout_s: float = DEFAULT_TIMEOUT_S
    delay_s: float = DEFAULT_DELAY_S

    def __post_init__(self) -> None:
        if isinstance(self.target, str):
            from .targets import parse_target

            # frozen: bypass __setattr__ for the one-time coercion
            object.__setattr__(self, "target", parse_target(self.target))
        elif not isinstance(self.target, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            raise ConfigError("invalid IP address")

        for name in ("start_port", "end_port", "worker_count"):
            value = getattr(self, name)
            # bool is an int subclass but never a port or a thread count
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigError(f"{name} must be an integer, got {value!r}")

        if not 1 <= self.start_port <= self.end_port <= MAX_PORT:
            raise ConfigError("port range out of bounds")
        if not 1 <= self.worker_count <= MAX_THREADS:
            raise ConfigError("failed to parse thread number")
        if self.timeout_s <= 0:
            raise ConfigError("timeout must be > 0")
        if self.delay_s < 0:
            raise ConfigError("delay must be >= 0")

    @property
    def port_count(self) -> int:
        return self.end_port - self.start_port + 1


@dataclass(frozen=True)
class ScanResult:
    target: str
    open_ports: Tuple[int, ...] = ()
    elapsed_s: float = 0.0

    def __iter__(self) -> Iterator[int]:
        return iter(self.open_ports)

    def __len__(self) -> int:
        return len(self.open_ports)
