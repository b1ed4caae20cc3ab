import asyncio
import struct

from mstart.core.errors import FrameBoundsViolation, ReadFailure
from mstart.core.models.config import DEFAULT_MAX_FRAME_LENGTH

# "!I" = uint32 big-endian (network order)
HEADER = struct.Struct("!I")
HEADER_SIZE = HEADER.size


def valid_length(length: int, maximum: int = DEFAULT_MAX_FRAME_LENGTH) -> bool:
    return 0 < length < maximum


def encode_frame(
    payload: bytes,
    maximum: int = DEFAULT_MAX_FRAME_LENGTH,
) -> tuple[bytes, bytes]:
    """
    Split an outgoing payload into its length prefix and its body.

    Both parts are returned separately so the writer can push them as two
    writes forming one logical operation.
    """
    length = len(payload)
    if not valid_length(length, maximum):
        raise FrameBoundsViolation(length, maximum)
    return HEADER.pack(length), bytes(payload)


def decode_header(header: bytes) -> int:
    return HEADER.unpack(header)[0]


class FrameReader:
    """
    Reassembles length-prefixed frames from an asyncio StreamReader.

    Each frame begins with a 4-byte big-endian length followed by exactly
    that many payload bytes. A length outside (0, maximum) is reported as
    FrameBoundsViolation before any payload byte is consumed, so the caller
    decides whether to skip it or to give up on the stream. End of stream
    and socket errors are reported as ReadFailure.

    `reading` is true while a payload announced by a valid header is being
    received.
    """
    def __init__(
        self,
        reader: asyncio.StreamReader,
        maximum: int = DEFAULT_MAX_FRAME_LENGTH,
    ) -> None:
        self._reader = reader
        self._maximum = maximum
        self.reading = False

    async def read(self) -> bytes:
        header = await self._read_exactly(HEADER_SIZE)
        length = decode_header(header)

        if not valid_length(length, self._maximum):
            raise FrameBoundsViolation(length, self._maximum)

        self.reading = True
        try:
            return await self._read_exactly(length)
        finally:
            self.reading = False

    async def _read_exactly(self, n: int) -> bytes:
        try:
            return await self._reader.readexactly(n)
        except asyncio.IncompleteReadError as ex:
            raise ReadFailure(
                f"Stream closed after {len(ex.partial)} of {n} byte(s)"
            ) from ex
        except OSError as ex:
            raise ReadFailure(f"Socket error while reading: {ex}") from ex
