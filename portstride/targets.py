from __future__ import annotations

import ipaddress

from .models import ConfigError, IPAddress


def parse_target(target: str) -> IPAddress:
    """
    Supports:
      - IPv4: "172.20.0.10"
      - IPv6: "::1", "fe80::1"
    Hostnames and CIDR blocks are rejected; a scan covers exactly one address.
    """
    target = target.strip()
    if not target:
        raise ConfigError("invalid IP address")

    try:
        return ipaddress.ip_address(target)
    except ValueError as e:
        raise ConfigError("invalid IP address") from e
