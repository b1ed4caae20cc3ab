from dataclasses import dataclass

from mstart.core.errors import FailureKind
from mstart.core.models.config import ClientConfig
from mstart.core.models.state import Action


@dataclass(frozen=True)
class FailurePolicy:
    """
    Maps each FailureKind to the Action taken by the loop drivers.

    Keeping the mapping as data lets the read loop, the send path and the
    reconnect loop share one decision table instead of each hard-coding
    its own reaction. Read and frame bounds failures default to a full
    reconnect, the same reaction as a failed send.
    """
    connect: Action = Action.retry
    send: Action = Action.reconnect
    read: Action = Action.reconnect
    frame_bounds: Action = Action.reconnect
    decode: Action = Action.drop
    no_observer: Action = Action.drop

    def __post_init__(self) -> None:
        if self.connect is Action.drop:
            raise ValueError("connect failures can only be retried or reconnected")
        if self.send is Action.retry:
            raise ValueError("failed sends are never retried")
        # a stream at end of file fails every read without suspending
        if self.read is Action.drop:
            raise ValueError("read failures can only be retried or reconnected")
        if self.frame_bounds is Action.retry:
            raise ValueError("out of bounds frames can only be dropped or reconnected")
        if self.no_observer is not Action.drop:
            raise ValueError("messages without an observer can only be dropped")

    @classmethod
    def from_config(cls, config: ClientConfig) -> "FailurePolicy":
        return cls(
            read=config.read_failure_action,
            frame_bounds=config.frame_bounds_action,
        )

    def resolve(self, kind: FailureKind) -> Action:
        return getattr(self, kind.value)
