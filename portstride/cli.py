from __future__ import annotations

import argparse
import sys
from functools import partial
from typing import List, Optional

from .logger import create_logger
from .models import (
    DEFAULT_DELAY_S,
    DEFAULT_PORT_END,
    DEFAULT_PORT_START,
    DEFAULT_THREADS,
    DEFAULT_TIMEOUT_S,
    MAX_THREADS,
    ConfigError,
    ScanConfig,
)
from .output import print_progress, print_report
from .ports import parse_port
from .scanner import scan
from .targets import parse_target


class _Parser(argparse.ArgumentParser):
    # Route every argparse failure through ConfigError so main() reports them all the same way
    def error(self, message: str):
        raise ConfigError(message)


HELP_FLAGS = ("-h", "-help", "--help")


def _threads(value: str) -> int:
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        raise argparse.ArgumentTypeError("failed to parse thread number")
    n = int(value)
    if not 1 <= n <= MAX_THREADS:
        raise argparse.ArgumentTypeError("failed to parse thread number")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="portstride",
        description="Multi-threaded TCP connect port scanner",
        add_help=False,
    )
    p.add_argument("target", metavar="IP_ADDRESS", help="IPv4 or IPv6 address to scan")
    p.add_argument(
        "-j", "--threads",
        type=_threads,
        default=DEFAULT_THREADS,
        metavar="THREADS",
        help=f"Worker thread count (default: {DEFAULT_THREADS})",
    )
    p.add_argument(
        "-p", "--ports",
        nargs=2,
        metavar=("START_PORT", "END_PORT"),
        help=f"Inclusive port range (default: {DEFAULT_PORT_START} {DEFAULT_PORT_END})",
    )
    p.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_S,
                   help=f"Connect timeout seconds (default: {DEFAULT_TIMEOUT_S})")
    p.add_argument("--delay", type=float, default=DEFAULT_DELAY_S,
                   help=f"Pause after each attempt, per thread, in seconds (default: {DEFAULT_DELAY_S})")
    p.add_argument("--format", choices=["text", "json"], default="text", help="Report format")
    p.add_argument("-q", "--quiet", action="store_true", help="Do not print progress markers")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Log more (repeatable)")
    p.add_argument(*HELP_FLAGS, action="help", help="Show this help message and exit")
    return p


def build_config(args: argparse.Namespace) -> ScanConfig:
    start_port, end_port = DEFAULT_PORT_START, DEFAULT_PORT_END
    if args.ports is not None:
        start_port = parse_port(args.ports[0], "start")
        end_port = parse_port(args.ports[1], "end")

    return ScanConfig(
        target=parse_target(args.target),
        start_port=start_port,
        end_port=end_port,
        worker_count=args.threads,
        timeout_s=args.timeout,
        delay_s=args.delay,
    )


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    try:
        # Help stands alone
        if len(argv) > 1 and any(flag in HELP_FLAGS for flag in argv):
            raise ConfigError("too many arguments")
        args = parser.parse_args(argv)
        config = build_config(args)
    except SystemExit as e:
        # Only the help action exits from parse_args; errors come through ConfigError
        return 0 if e.code is None else e.code
    except ConfigError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: problem parsing arguments: {e}", file=sys.stderr)
        return 1

    logger = create_logger(args.verbose)
    logger.info(
        "Target: %s | Ports: %d-%d (%d) | Threads: %d",
        config.target, config.start_port, config.end_port, config.port_count, config.worker_count,
    )

    on_open = None
    if not args.quiet:
        # Keep stdout parseable when it carries JSON
        on_open = partial(print_progress, stream=sys.stderr if args.format == "json" else None)

    result = scan(config, on_open=on_open)
    print_report(result, fmt=args.format)
    return 0


def run() -> None:
    sys.exit(main())
