"""Networking helpers for the CSM receiver."""

from .udp_receiver import (
    MAX_DATAGRAM_SIZE,
    CsmReceiverService,
    ListenerState,
    listen_and_serve,
    parse_address,
)

__all__ = [
    "MAX_DATAGRAM_SIZE",
    "CsmReceiverService",
    "ListenerState",
    "listen_and_serve",
    "parse_address",
]
