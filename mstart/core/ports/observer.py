from typing import Protocol

from mstart.core.models.message import Message


class Observer(Protocol):
    """
    Single consumer of the messages received from the M-START server.

    The Relay awaits `message_received` while holding its dispatch lock,
    so invocations never overlap. An implementation that never returns
    stalls the delivery of every following message.
    """

    async def message_received(self, message: Message) -> None:
        """
        Process one message pushed by the server.

        Exceptions are logged by the Relay and do not interrupt the link.
        """
