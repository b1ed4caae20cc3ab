from typing import Protocol, Sequence

from mstart.core.models.message import Argument, Message


class Codec(Protocol):
    """
    Translates between typed OSC arguments and the payload of a frame.

    Implementations must be:
    - pure (no side effects, no I/O)
    - total on well-formed input for `encode`
    - safe against malformed input for `decode`, reporting it only through
      DecodeFailure subclasses (MalformedBundle, MalformedMessage,
      BadDataType)
    """

    def encode(self, address: str, args: Sequence[Argument]) -> bytes:
        """Encode an addressed message into a frame payload."""

    def decode(self, data: bytes) -> Message:
        """Decode a frame payload into a Message."""
