"""Decoding of AWS Client-Side Monitoring datagrams."""
from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Union

from ..errors import EmptyPayloadError, MalformedPayloadError

# Field name -> JSON key emitted by the SDKs.
WIRE_KEYS: Dict[str, str] = {
    "api": "Api",
    "type": "Type",
    "region": "Region",
    "service": "Service",
    "access_key": "AccessKey",
    "user_agent": "UserAgent",
    "request_id": "XAmznRequestId",
    "timestamp": "Timestamp",
    "attempts": "AttemptCount",
    "latency": "Latency",
    "version": "Version",
    "http_status_code": "HttpStatusCode",
    "final_http_status_code": "FinalHttpStatusCode",
    "max_retries_exceeded": "MaxRetriesExceeded",
}
_BY_FOLDED_KEY = {wire.lower(): name for name, wire in WIRE_KEYS.items()}


@dataclass(frozen=True)
class CsmEvent:
    """One decoded CSM message."""

    api: str = ""
    type: str = ""
    region: str = ""
    service: str = ""
    access_key: str = ""
    user_agent: str = ""
    request_id: str = ""
    timestamp: int = 0
    attempts: int = 0
    latency: int = 0
    version: int = 0
    http_status_code: int = 0
    final_http_status_code: int = 0
    max_retries_exceeded: int = 0

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "CsmEvent":
        """Build an event from a parsed JSON object.

        Keys are matched case-insensitively and applied in mapping order, so
        a later match overrides an earlier one. Unknown
        keys are ignored and ``null`` values leave the field unchanged.
        Raises ``MalformedPayloadError`` when a value has the wrong type.
        """

        defaults = {fld.name: fld.default for fld in fields(cls)}
        data: Dict[str, Any] = {}
        for key, raw in mapping.items():
            name = _BY_FOLDED_KEY.get(str(key).lower())
            if name is None or raw is None:
                continue
            data[name] = _coerce(name, defaults[name], raw)
        return cls(**data)

    def as_payload(self) -> Dict[str, Any]:
        return {WIRE_KEYS[fld.name]: getattr(self, fld.name) for fld in fields(self)}


def _coerce(name: str, default: Any, raw: Any) -> Any:
    # bool is an int subclass but never a valid CSM number
    if isinstance(default, str):
        ok = isinstance(raw, str)
    else:
        ok = isinstance(raw, int) and not isinstance(raw, bool)
    if not ok:
        expected = type(default).__name__
        raise MalformedPayloadError(
            f"field {WIRE_KEYS[name]!r} expects {expected}, got {type(raw).__name__}"
        )
    return raw


def decode(payload: Union[str, bytes]) -> CsmEvent:
    """Decode one datagram payload into a :class:`CsmEvent`."""

    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayloadError(f"payload is not valid UTF-8: {exc}") from exc

    if not payload or not payload.strip():
        raise EmptyPayloadError()

    try:
        obj = json.loads(payload)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise MalformedPayloadError(f"invalid JSON: {exc}") from exc

    if not isinstance(obj, dict):
        raise MalformedPayloadError(
            f"expected a JSON object, got {type(obj).__name__}"
        )
    return CsmEvent.from_mapping(obj)
