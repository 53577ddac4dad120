import json
import socket
import time
from typing import Callable, Union

import pytest


def _get_free_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def _wait_until(condition: Callable[[], bool], timeout: float = 1.0, interval: float = 0.01) -> None:
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        time.sleep(interval)


def _send_datagram(port: int, payload: Union[bytes, str, dict]) -> None:
    """Send one datagram to the local receiver listening on *port*."""

    if isinstance(payload, dict):
        payload = json.dumps(payload)
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
        sender.sendto(payload, ("127.0.0.1", port))


@pytest.fixture
def free_port() -> int:
    return _get_free_port()


@pytest.fixture
def wait_until() -> Callable[..., None]:
    return _wait_until


@pytest.fixture
def send_datagram() -> Callable[[int, Union[bytes, str, dict]], None]:
    return _send_datagram
