from __future__ import annotations

import json
import sys
from typing import Optional, TextIO

from .models import ScanResult


def print_progress(port: int, stream: Optional[TextIO] = None) -> None:
    # One marker per open port, as it is found; called from worker threads
    out = stream if stream is not None else sys.stdout
    out.write(".")
    out.flush()


def format_row(port: int) -> str:
    return f"Port {port} is open"


def print_report(result: ScanResult, fmt: str = "text") -> None:
    if fmt == "text":
        print()  # newline after progress markers
        print("Scan complete.")
        for port in result:
            print(format_row(port))

    elif fmt == "json":
        payload = {
            "target": result.target,
            "open_ports": list(result.open_ports),
            "elapsed_s": result.elapsed_s,
        }
        print(json.dumps(payload, indent=2))

    else:
        raise ValueError(f"Unsupported format: {fmt}")
