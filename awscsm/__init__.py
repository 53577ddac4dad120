"""Receive AWS Client-Side Monitoring telemetry over UDP."""

from .errors import (
    BindError,
    CsmError,
    DecodeError,
    EmptyPayloadError,
    MalformedPayloadError,
    ShutdownError,
)
from .net.udp_receiver import CsmReceiverService, ListenerState, listen_and_serve
from .telemetry.message import CsmEvent, decode
from .version import APP_VERSION

__version__ = APP_VERSION

__all__ = [
    "BindError",
    "CsmError",
    "CsmEvent",
    "CsmReceiverService",
    "DecodeError",
    "EmptyPayloadError",
    "ListenerState",
    "MalformedPayloadError",
    "ShutdownError",
    "decode",
    "listen_and_serve",
]
