import asyncio
import logging
from typing import Any

from mstart.core.connection.manager import ConnectionManager
from mstart.core.connection.policy import FailurePolicy
from mstart.core.errors import NoObserver
from mstart.core.helpers.spawn import TaskSpawner
from mstart.core.models.config import ClientConfig
from mstart.core.models.message import Argument, Message
from mstart.core.models.state import ConnectionState
from mstart.core.ports.codec import Codec
from mstart.core.ports.observer import Observer


class Relay:
    """
    Entry point of the client API: relays messages received from the
    M-START server to a single observer and sends messages to the server.

    The Relay owns the ConnectionManager and registers itself as its sink.
    Deliveries are serialized by a lock, so the observer is never invoked
    concurrently, whatever the number of internal callers. The observer is
    fixed at construction; without one, messages are dropped with a
    warning.

    Sending never raises on I/O failures: the payload is handed to the
    ConnectionManager, which drops it and reconnects when the link is down.
    Invalid values (an int32 out of range, an address without a leading
    "/") are programming errors and raise ValueError to the caller.
    """
    def __init__(
        self,
        config: ClientConfig,
        codec: Codec,
        spawner: TaskSpawner,
        observer: Observer | None = None,
        policy: FailurePolicy | None = None,
    ) -> None:
        self._codec = codec
        self._observer = observer
        self._policy = policy or FailurePolicy.from_config(config)
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger("core.relay")

        if observer is None:
            self._logger.warning(
                "No observer registered, incoming messages will be dropped"
            )

        self._manager = ConnectionManager(
            config=config,
            codec=codec,
            spawner=spawner,
            sink=self.dispatch,
            policy=self._policy,
        )

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    @property
    def policy(self) -> FailurePolicy:
        return self._policy

    @property
    def connected(self) -> bool:
        """
        True once the handshake has been written on the current link.

        The link may drop right after this returns; do not rely on it to
        decide whether a send will go through.
        """
        return self._manager.state is ConnectionState.connected

    def is_ready(self) -> bool:
        return self._manager.is_ready()

    def start(self) -> asyncio.Task | None:
        """Start connecting to the server in the background."""
        return self._manager.reconnect()

    async def close(self) -> None:
        await self._manager.close()

    async def shutdown(self) -> None:
        await self._manager.shutdown()

    async def dispatch(self, message: Message) -> None:
        async with self._lock:
            try:
                await self._deliver(message)
            except NoObserver as ex:
                action = self._policy.resolve(ex.kind)
                self._logger.warning(f"{ex.kind} failure, {action}: {ex}")
            except Exception as ex:
                self._logger.error(
                    f"Observer failed to process {message.address}: {ex}",
                    exc_info=ex
                )

    async def send_message(self, address: str, *args: Any) -> None:
        """
        Send a message built from already typed Arguments or plain values,
        whose OSC type is then inferred.
        """
        arguments = [Argument.infer(arg) for arg in args]
        await self._manager.send(self._codec.encode(address, arguments))

    async def send_raw(self, payload: bytes) -> None:
        await self._manager.send(payload)

    async def send_int32(self, address: str, value: int) -> None:
        await self.send_message(address, Argument.int32(value))

    async def send_int64(self, address: str, value: int) -> None:
        await self.send_message(address, Argument.int64(value))

    async def send_float(self, address: str, value: float) -> None:
        await self.send_message(address, Argument.float(value))

    async def send_double(self, address: str, value: float) -> None:
        await self.send_message(address, Argument.double(value))

    async def send_string(self, address: str, value: str) -> None:
        await self.send_message(address, Argument.string(value))

    async def _deliver(self, message: Message) -> None:
        if self._observer is None:
            raise NoObserver(
                f"Message {message.address} dropped, no observer registered"
            )
        await self._observer.message_received(message)
