"""CSM message model and decoder."""

from .message import WIRE_KEYS, CsmEvent, decode

__all__ = ["WIRE_KEYS", "CsmEvent", "decode"]
