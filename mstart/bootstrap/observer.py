import logging

from mstart.core.models.message import Message

CLIENT_SEND_PREFIX = "/client-send/"


class LoggingObserver:
    """
    Default observer of the command line client.

    Every message pushed by the M-START server to its clients has an
    address starting with "/client-send/". Replace this observer with your
    own to act on those messages; this one only logs them.
    """
    def __init__(self) -> None:
        self.received = 0
        self._logger = logging.getLogger("bootstrap.observer")

    async def message_received(self, message: Message) -> None:
        self.received += 1

        if message.address.startswith(CLIENT_SEND_PREFIX):
            topic = message.address.removeprefix(CLIENT_SEND_PREFIX)
            self._logger.info(f"Server push on '{topic}': {message.values}")
        else:
            self._logger.debug(f"Message {message.address}: {message.values}")
