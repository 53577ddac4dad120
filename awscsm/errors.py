"""Exceptions raised by the CSM receiver."""


class CsmError(Exception):
    """Base class for receiver errors."""


class DecodeError(CsmError, ValueError):
    """A datagram payload could not be turned into a CsmEvent."""


class EmptyPayloadError(DecodeError):
    def __init__(self) -> None:
        super().__init__("unable to parse an empty payload")


class MalformedPayloadError(DecodeError):
    pass


class BindError(CsmError, OSError):
    """The UDP socket could not be resolved or bound."""

    def __init__(self, address: str, original_error: Exception) -> None:
        super().__init__(f"unable to bind udp://{address}: {original_error}")
        self.address = address
        self.original_error = original_error


class ShutdownError(CsmError, OSError):
    """Releasing the socket failed during a requested stop."""
