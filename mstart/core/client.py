import asyncio
import logging

from mstart.core.helpers.spawn import TaskSpawner
from mstart.core.models.config import ClientConfig
from mstart.core.ports.codec import Codec
from mstart.core.ports.observer import Observer
from mstart.core.relay import Relay


class MStartClient:
    """
    Wires the Relay, its ConnectionManager and the task spawner onto one
    event loop, and drives their lifecycle for a long-running process.
    """
    def __init__(
        self,
        config: ClientConfig,
        codec: Codec,
        observer: Observer | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._config = config
        self._loop = loop or self._create_event_loop()
        self._spawner = TaskSpawner(loop=self._loop)
        self._relay = Relay(
            config=config,
            codec=codec,
            spawner=self._spawner,
            observer=observer,
        )

        self._logger = logging.getLogger("mstart.client")

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def relay(self) -> Relay:
        return self._relay

    async def run(self, stop_event: asyncio.Event) -> None:
        self._logger.info(
            f"Starting link to {self._config.address} "
            f"for activity '{self._config.activity}'"
        )
        self._relay.start()

        await stop_event.wait()

        self._logger.info("Stop requested, shutting down the link")
        await self._relay.shutdown()
        await self._spawner.cancel_all()

    @staticmethod
    def _create_event_loop() -> asyncio.AbstractEventLoop:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return loop
