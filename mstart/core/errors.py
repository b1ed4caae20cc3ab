from enum import StrEnum


class FailureKind(StrEnum):
    """
    Classifies every failure the link can run into.

    The kind is what the loop drivers look up in the FailurePolicy; they
    never branch on the concrete exception type.
    """
    connect = "connect"
    send = "send"
    read = "read"
    frame_bounds = "frame_bounds"
    decode = "decode"
    no_observer = "no_observer"


class LinkError(Exception):
    """Base class of all failures raised inside the link."""
    kind: FailureKind


class ConnectFailure(LinkError):
    """I/O error or timeout while opening the socket or writing the handshake."""
    kind = FailureKind.connect


class SendFailure(LinkError):
    """I/O error while writing a frame, or no open link to write it to."""
    kind = FailureKind.send


class ReadFailure(LinkError):
    """I/O error or end of stream while reading a frame."""
    kind = FailureKind.read


class FrameBoundsViolation(LinkError):
    """A frame length outside the accepted (0, maximum) range."""
    kind = FailureKind.frame_bounds

    def __init__(self, length: int, maximum: int) -> None:
        super().__init__(
            f"Frame length {length} outside accepted range (0, {maximum})"
        )
        self.length = length
        self.maximum = maximum


class DecodeFailure(LinkError):
    """The payload of a frame could not be turned into a Message."""
    kind = FailureKind.decode


class MalformedBundle(DecodeFailure):
    pass


class MalformedMessage(DecodeFailure):
    pass


class BadDataType(DecodeFailure):
    """
    Raised for argument type tags the codec does not support, and by the
    typed Message accessors when the stored type differs from the one asked.
    """


class NoObserver(LinkError):
    """A message was ready for delivery but nobody is listening."""
    kind = FailureKind.no_observer
