from dataclasses import dataclass

from mstart.core.models.state import Action
from mstart.core.throttling.backoff import ExponentialBackoff

DEFAULT_PORT = 59900
DEFAULT_MAX_FRAME_LENGTH = 10000


@dataclass
class ClientConfig:
    """
    Static configuration of the link to an M-START server.

    Supplied once at construction, there is no dynamic reload. The
    bootstrap layer builds it from the YAML/env settings; tests build it
    directly.
    """
    host: str
    """
    IP address or hostname of the M-START server.
    """

    activity: str
    """
    Name of the activity, as referenced in the server database, this client
    links itself to during the handshake.
    """

    port: int = DEFAULT_PORT
    """
    TCP port of the M-START server.
    """

    reconnect_delay: float = 20.0
    """
    Delay (in seconds) between two failed connect attempts.
    """

    read_retry_delay: float = 2.0
    """
    Delay (in seconds) before retrying a read, when the read failure
    action is `retry`.
    """

    max_frame_length: int = DEFAULT_MAX_FRAME_LENGTH
    """
    Exclusive upper bound of a frame length. Frames declaring a length
    outside (0, max_frame_length) are never handed to the codec.
    """

    connect_timeout: float = 10.0
    """
    Maximum time (in seconds) a single connect attempt may take.
    """

    max_retries: int | None = None
    """
    Number of failed attempts after which the reconnect loop gives up.
    None retries forever.
    """

    backoff_factor: float = 1.0
    """
    Growth of the reconnect delay after each failure. 1 keeps it fixed.
    """

    backoff_maximum: float | None = None
    """
    Cap of the reconnect delay. Defaults to `reconnect_delay`.
    """

    backoff_jitter: float = 0.0
    """
    Maximum random jitter added to each reconnect delay.
    """

    read_failure_action: Action = Action.reconnect
    """
    What the read loop does on an I/O error: `reconnect` rebuilds the link,
    `retry` waits `read_retry_delay` and reads again on the same socket.
    """

    frame_bounds_action: Action = Action.reconnect
    """
    What the read loop does on an out of bounds frame length: `reconnect`
    rebuilds the link since the stream is no longer aligned, `drop` skips
    the length field and reads the next one.
    """

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def build_backoff(self) -> ExponentialBackoff:
        return ExponentialBackoff(
            initial=self.reconnect_delay,
            maximum=self.backoff_maximum or self.reconnect_delay,
            factor=self.backoff_factor,
            jitter=self.backoff_jitter,
        )
