import asyncio
import os
import signal
import sys

import pytest

from mstart.core.helpers.utils import stop_on_signals


@pytest.mark.ut
@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="SIGTERM cannot be delivered to self")
async def test_sigterm_sets_stop_event():
    loop = asyncio.get_running_loop()
    previous = signal.getsignal(signal.SIGTERM)

    with stop_on_signals(loop) as stop_event:
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.wait_for(stop_event.wait(), timeout=1.0)

    assert stop_event.is_set()
    assert signal.getsignal(signal.SIGTERM) is previous
