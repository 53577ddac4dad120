#!/usr/bin/env python3
"""
Send sample AWS CSM datagrams to a running receiver.

Each datagram is an ``ApiCall`` message shaped like the ones emitted by the
AWS SDKs when client-side monitoring is enabled.
"""

from __future__ import annotations

import argparse
import json
import socket
import time
import uuid

from awscsm.telemetry.message import CsmEvent


def build_sample_event(index: int) -> CsmEvent:
    return CsmEvent(
        api="ListRoles",
        type="ApiCall",
        region="eu-central-1",
        service="IAM",
        user_agent="csm-emitter/1.0",
        request_id=str(uuid.uuid4()),
        timestamp=int(time.time() * 1000),
        attempts=1,
        latency=100 + index,
        version=1,
        final_http_status_code=200,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="AWS CSM datagram emitter")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Receiver host")
    parser.add_argument("--port", type=int, default=31000, help="Receiver UDP port")
    parser.add_argument("--count", type=int, default=1, help="Number of datagrams to send")
    parser.add_argument(
        "--interval",
        type=float,
        default=0.0,
        help="Seconds to wait between datagrams",
    )
    args = parser.parse_args()

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        for index in range(max(0, args.count)):
            payload = json.dumps(build_sample_event(index).as_payload()).encode("utf-8")
            sock.sendto(payload, (args.host, args.port))
            print(f"[{index}] sent {len(payload)} bytes to udp://{args.host}:{args.port}")
            if args.interval > 0:
                time.sleep(args.interval)


if __name__ == "__main__":
    main()
