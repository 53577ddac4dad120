"""Command line entry point: write received CSM events as CSV."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional, TextIO

from .errors import BindError
from .io.csv_writer import make_csv_handler
from .net.udp_receiver import CsmReceiverService, ListenerState
from .settings import load_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = load_settings()
    parser = argparse.ArgumentParser(
        prog="awscsm2csv",
        description="Listen for AWS Client-Side Monitoring datagrams and write them as CSV",
    )
    parser.add_argument("--host", default=settings.host, help="Address to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="UDP port to bind")
    parser.add_argument(
        "--output",
        "-o",
        default="-",
        help="CSV destination file ('-' for stdout)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.debug_log,
        help="Log dropped datagrams",
    )
    return parser


def run(
    args: argparse.Namespace,
    stream: TextIO,
    stop_event: threading.Event,
) -> int:
    settings = load_settings()
    settings.host = args.host
    settings.port = args.port

    service = CsmReceiverService(
        settings.address,
        make_csv_handler(stream),
        buffer_size=settings.buffer_size,
        poll_interval=settings.poll_interval_s,
    )
    try:
        service.start()
    except BindError as exc:
        logger.error("unable to start UDP server: %s", exc)
        return 1

    while not stop_event.wait(timeout=settings.poll_interval_s):
        if service.state in (ListenerState.FAILED, ListenerState.STOPPED):
            break

    try:
        service.stop()
    except Exception as exc:
        logger.error("CSM receiver failed: %s", exc)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        stream=sys.stderr,
    )

    stop_event = threading.Event()

    def _request_stop(signum, _frame) -> None:
        logger.info("Received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    if args.output == "-":
        return run(args, sys.stdout, stop_event)
    with open(args.output, "w", newline="", encoding="utf-8") as fh:
        return run(args, fh, stop_event)


if __name__ == "__main__":
    sys.exit(main())
