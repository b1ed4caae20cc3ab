import asyncio
import logging

from mstart.core.connection.policy import FailurePolicy
from mstart.core.errors import (
    ConnectFailure,
    FrameBoundsViolation,
    LinkError,
    SendFailure,
)
from mstart.core.helpers.spawn import TaskSpawner
from mstart.core.models.config import ClientConfig
from mstart.core.models.message import Argument, MessageSink
from mstart.core.models.state import Action, ConnectionState
from mstart.core.ports.codec import Codec
from mstart.core.throttling.backoff import ExponentialBackoff
from mstart.core.transport.framing import FrameReader, encode_frame

LINK_ACTIVITY_ADDRESS = "/set-link-with-activity"


class ConnectionManager:
    """
    Owns the single long-lived TCP link to an M-START server.

    On connect, the manager opens the socket, writes the handshake frame
    (address "/set-link-with-activity", one string argument holding the
    activity name) and only then marks the link connected and starts the
    read loop. Application sends are refused until that point, which
    guarantees the handshake is the first frame the server sees on every
    connection.

    The read loop runs as a supervised task, reassembles length-prefixed
    frames, decodes them through the codec and awaits the sink for every
    message. The reconnect loop runs as another supervised task; at most
    one of each exists at any time. `close()` cancels both.

    Every failure is classified by its FailureKind and resolved through
    the FailurePolicy into retry, drop or reconnect. Failed sends are not
    queued: the payload is lost and, unless a reconnect attempt is already
    in flight, the reconnect loop is started.

    State transitions are made while holding a single lock, outgoing
    frames are serialized by a second one.
    """
    def __init__(
        self,
        config: ClientConfig,
        codec: Codec,
        spawner: TaskSpawner,
        sink: MessageSink,
        backoff: ExponentialBackoff | None = None,
        policy: FailurePolicy | None = None,
    ) -> None:
        self._config = config
        self._codec = codec
        self._spawner = spawner
        self._sink = sink
        self._backoff = backoff or config.build_backoff()
        self._policy = policy or FailurePolicy.from_config(config)

        self._state = ConnectionState.disconnected
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._frames: FrameReader | None = None
        self._read_task: asyncio.Task | None = None
        self._connect_task: asyncio.Task | None = None
        self._connected = asyncio.Event()
        self._stopped = False

        self._state_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

        self._logger = logging.getLogger("core.connection.manager")

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connecting(self) -> bool:
        """True while a reconnect loop is in flight."""
        return self._connect_task is not None and not self._connect_task.done()

    @property
    def reading(self) -> bool:
        """True while the read loop is receiving the payload of a frame."""
        return self._frames is not None and self._frames.reading

    def is_ready(self) -> bool:
        """
        True if a socket exists and is open.

        This does not guarantee the handshake has completed; use `state`
        or `wait_connected()` for that.
        """
        return self._writer is not None and not self._writer.is_closing()

    async def wait_connected(self, timeout: float | None = None) -> bool:
        """Wait until the handshake has been written, or the timeout expires."""
        try:
            await asyncio.wait_for(self._connected.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def connect(self) -> None:
        """
        Open the link and perform the handshake.

        Raises ConnectFailure on any I/O error or timeout; the method does
        not retry, the reconnect loop does. Connecting an already connected
        manager is a no-op.
        """
        if self._stopped:
            raise ConnectFailure("Connection manager is shut down")

        async with self._state_lock:
            if self._state is ConnectionState.connected and self.is_ready():
                return

            self._state = ConnectionState.connecting
            try:
                await self._open()
            except ConnectFailure:
                await self._release()
                self._state = (
                    ConnectionState.connecting
                    if self.connecting
                    else ConnectionState.disconnected
                )
                raise

            self._state = ConnectionState.connected
            self._connected.set()
            self._read_task = self._spawner.spawn(
                self._read_loop(self._frames),
                name=f"mstart-read-{self._config.address}",
            )

        self._logger.info(
            f"Linked to {self._config.address} "
            f"with activity '{self._config.activity}'"
        )

    def reconnect(self) -> asyncio.Task | None:
        """
        Start the reconnect loop unless one is already in flight.

        Returns the task of the loop in flight, or None once the manager
        has been shut down.
        """
        if self._stopped:
            self._logger.debug("Connection manager is shut down, not reconnecting")
            return None

        if self.connecting:
            return self._connect_task

        self._connect_task = self._spawner.spawn(
            self._reconnect_loop(),
            name=f"mstart-connect-{self._config.address}",
        )
        return self._connect_task

    async def send(self, payload: bytes) -> None:
        """
        Write one frame: the 4-byte length prefix, then the payload.

        Never raises. Out of bounds payloads are dropped; I/O failures and
        sends attempted while not connected lose the payload and start the
        reconnect loop.
        """
        if self._stopped:
            self._logger.warning("Connection manager is shut down, message dropped")
            return

        try:
            header, body = encode_frame(payload, self._config.max_frame_length)
        except FrameBoundsViolation as ex:
            self._logger.error(f"Outgoing message dropped: {ex}")
            return

        try:
            async with self._write_lock:
                writer = self._writer
                if self._state is not ConnectionState.connected or writer is None:
                    raise SendFailure(f"Not connected to {self._config.address}")

                try:
                    writer.write(header)
                    writer.write(body)
                    await writer.drain()
                except OSError as ex:
                    # no transition can be in flight while the link is connected
                    self._state = ConnectionState.disconnected
                    self._connected.clear()
                    raise SendFailure(
                        f"Send to {self._config.address} failed: {ex}"
                    ) from ex
        except SendFailure as ex:
            self._on_failure(ex)

    async def close(self) -> None:
        """
        Cancel the read and reconnect loops and close the socket.

        Best effort: errors raised while closing are logged. The manager may
        be connected again afterwards.
        """
        task = self._connect_task
        self._connect_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        async with self._state_lock:
            self._state = ConnectionState.disconnected
            await self._release()

    async def shutdown(self) -> None:
        """
        Close the link for good: no reconnect is started afterwards and
        sends are dropped. Safe to call multiple times.
        """
        if self._stopped:
            return

        self._stopped = True
        await self.close()
        self._logger.info(f"Link to {self._config.address} shut down")

    async def _open(self) -> None:
        # caller holds the state lock
        await self._release()

        address = self._config.address
        self._logger.info(f"Trying to connect to {address}")
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(
                    host=self._config.host,
                    port=self._config.port,
                ),
                timeout=self._config.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError) as ex:
            raise ConnectFailure(f"Unable to connect to {address}: {ex!r}") from ex

        self._reader = reader
        self._writer = writer
        self._frames = FrameReader(reader, self._config.max_frame_length)

        handshake = self._codec.encode(
            LINK_ACTIVITY_ADDRESS, [Argument.string(self._config.activity)]
        )
        header, body = encode_frame(handshake, self._config.max_frame_length)
        try:
            async with self._write_lock:
                writer.write(header)
                writer.write(body)
                await writer.drain()
        except OSError as ex:
            raise ConnectFailure(f"Handshake with {address} failed: {ex}") from ex

    async def _release(self) -> None:
        # caller holds the state lock
        self._connected.clear()

        task = self._read_task
        self._read_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        writer = self._writer
        self._reader = None
        self._writer = None
        self._frames = None

        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as ex:
            self._logger.warning(
                f"Error closing the link to {self._config.address}: {ex}"
            )

    async def _reconnect_loop(self) -> None:
        async with self._state_lock:
            self._state = ConnectionState.connecting
            await self._release()

        self._backoff.reset()
        attempts = 0
        while not self._stopped:
            try:
                await self.connect()
                return
            except ConnectFailure as ex:
                attempts += 1
                max_retries = self._config.max_retries
                if max_retries is not None and attempts >= max_retries:
                    self._logger.error(
                        f"Giving up connecting to {self._config.address} "
                        f"after {attempts} attempt(s): {ex}"
                    )
                    async with self._state_lock:
                        self._state = ConnectionState.disconnected
                    return

                delay = self._backoff.next_delay()
                self._logger.warning(f"{ex}. Retrying in {delay:.1f}s")
                await asyncio.sleep(delay)

    async def _read_loop(self, frames: FrameReader) -> None:
        while True:
            try:
                payload = await frames.read()
                message = self._codec.decode(payload)
            except LinkError as ex:
                action = self._on_failure(ex)
                if action is Action.reconnect:
                    return
                if action is Action.retry:
                    await asyncio.sleep(self._config.read_retry_delay)
                continue

            try:
                await self._sink(message)
            except Exception as ex:
                self._logger.error(
                    f"Delivery of {message.address} failed: {ex}", exc_info=ex
                )

    def _on_failure(self, ex: LinkError) -> Action:
        action = self._policy.resolve(ex.kind)

        if action is Action.drop:
            self._logger.warning(f"{ex.kind} failure, dropped: {ex}")
        elif action is Action.retry:
            self._logger.warning(f"{ex.kind} failure, retrying: {ex}")
        else:
            if self.connecting:
                self._logger.warning(
                    f"{ex.kind} failure, reconnect already in progress: {ex}"
                )
            else:
                self._logger.error(f"{ex.kind} failure, reconnecting: {ex}")
            self.reconnect()

        return action
