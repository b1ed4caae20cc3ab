import asyncio
import contextlib
import logging
import signal
import sys
import threading
from types import FrameType
from typing import Generator

STOP_SIGNALS = (
    signal.SIGINT,
    signal.SIGTERM,
)

if sys.platform == "win32":
    STOP_SIGNALS += (signal.SIGBREAK,)


@contextlib.contextmanager
def stop_on_signals(
    loop: asyncio.AbstractEventLoop,
) -> Generator[asyncio.Event, None, None]:
    """
    Turn SIGINT/SIGTERM into an asyncio.Event for the duration of the block.

    The previous handlers are restored on exit. Outside of the main thread
    signals cannot be trapped, the event is then only set by the caller.
    """
    stop_event = asyncio.Event()

    if threading.current_thread() is not threading.main_thread():
        yield stop_event
        return

    def handle(sig: int, frame: FrameType | None) -> None:
        logging.getLogger("core.helpers.utils").info(
            f"Received {signal.Signals(sig).name}, stopping"
        )
        loop.call_soon_threadsafe(stop_event.set)

    previous = {sig: signal.signal(sig, handle) for sig in STOP_SIGNALS}
    try:
        yield stop_event
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s',
    )
