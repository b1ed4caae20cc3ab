import asyncio
import time

from mstart.core.models.message import Message
from mstart.core.transport.framing import HEADER_SIZE, decode_header


class FakeStreamWriter:
    """
    A minimal in-memory stand-in for asyncio.StreamWriter.

    It records every write and tracks whether it has been closed. `drain`
    yields to the event loop so that concurrent writers get a chance to
    interleave, and raises `drain_error` when one is set.
    """

    def __init__(self) -> None:
        self.writes: list[bytes] = []
        self.drain_error: BaseException | None = None
        self._closed = False

    def write(self, data: bytes) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("data must be bytes-like")
        self.writes.append(bytes(data))

    async def drain(self) -> None:
        await asyncio.sleep(0)
        if self.drain_error is not None:
            raise self.drain_error

    def close(self) -> None:
        self._closed = True

    def is_closing(self) -> bool:
        return self._closed

    async def wait_closed(self) -> None:
        return None

    # Optional helpers for tests
    @property
    def buffer(self) -> bytes:
        return b"".join(self.writes)

    @property
    def frames(self) -> list[bytes]:
        return split_frames(self.buffer)


def split_frames(data: bytes) -> list[bytes]:
    frames = []
    offset = 0
    while offset < len(data):
        length = decode_header(data[offset:offset + HEADER_SIZE])
        offset += HEADER_SIZE
        frames.append(data[offset:offset + length])
        offset += length
    return frames


class RecordingObserver:
    """
    Observer recording each delivery with its entry and exit timestamps,
    and the highest number of deliveries seen in progress at once.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.messages: list[Message] = []
        self.spans: list[tuple[float, float]] = []
        self.max_active = 0
        self._active = 0

    async def message_received(self, message: Message) -> None:
        self._active += 1
        self.max_active = max(self.max_active, self._active)
        entered = time.monotonic()
        try:
            await asyncio.sleep(self.delay)
            self.messages.append(message)
        finally:
            self.spans.append((entered, time.monotonic()))
            self._active -= 1
