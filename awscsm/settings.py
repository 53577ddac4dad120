"""Receiver settings read from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .net.udp_receiver import DEFAULT_POLL_INTERVAL, MAX_DATAGRAM_SIZE

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 31000


@dataclass
class ReceiverSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    buffer_size: int = MAX_DATAGRAM_SIZE
    poll_interval_s: float = DEFAULT_POLL_INTERVAL
    debug_log: bool = False

    @property
    def address(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def _clamp_port(value: int) -> int:
    return max(1, min(65535, int(value)))


def _clamp_buffer_size(value: int) -> int:
    return max(512, min(65535, int(value)))


def _clamp_poll_interval(value: float) -> float:
    return max(0.01, min(5.0, float(value)))


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.lower() in {"1", "true", "yes", "on"}
    return bool(value)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ReceiverSettings:
    """Load receiver settings, falling back to defaults for invalid values.

    ``AWS_CSM_HOST`` and ``AWS_CSM_PORT`` are the variables the AWS SDKs read
    to decide where to send CSM datagrams, so a receiver started in the same
    environment listens where the clients publish.
    """

    env = os.environ if environ is None else environ

    host = env.get("AWS_CSM_HOST", "").strip() or DEFAULT_HOST

    try:
        port = _clamp_port(int(env.get("AWS_CSM_PORT", DEFAULT_PORT)))
    except (TypeError, ValueError):
        port = DEFAULT_PORT

    try:
        buffer_size = _clamp_buffer_size(
            int(env.get("AWSCSM_BUFFER_SIZE", MAX_DATAGRAM_SIZE))
        )
    except (TypeError, ValueError):
        buffer_size = MAX_DATAGRAM_SIZE

    try:
        poll_interval = _clamp_poll_interval(
            float(env.get("AWSCSM_POLL_INTERVAL", DEFAULT_POLL_INTERVAL))
        )
    except (TypeError, ValueError):
        poll_interval = DEFAULT_POLL_INTERVAL

    return ReceiverSettings(
        host=host,
        port=port,
        buffer_size=buffer_size,
        poll_interval_s=poll_interval,
        debug_log=_parse_bool(env.get("AWSCSM_DEBUG")),
    )
