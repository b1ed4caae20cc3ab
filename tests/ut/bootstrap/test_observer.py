import logging

import pytest

from mstart.bootstrap.observer import LoggingObserver
from mstart.core.models.message import Argument, Message


@pytest.mark.ut
@pytest.mark.asyncio
async def test_logs_server_pushes(caplog):
    observer = LoggingObserver()

    with caplog.at_level(logging.DEBUG, logger="bootstrap.observer"):
        await observer.message_received(
            Message("/client-send/temperature", (Argument.float(21.5),))
        )
        await observer.message_received(Message("/other"))

    assert observer.received == 2
    records = [(r.levelno, r.getMessage()) for r in caplog.records]
    assert (logging.INFO, "Server push on 'temperature': [21.5]") in records
    assert (logging.DEBUG, "Message /other: []") in records
