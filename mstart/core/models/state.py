from enum import StrEnum


class ConnectionState(StrEnum):
    """
    Lifecycle of the single link held by a ConnectionManager.

    Transitions are only performed while holding the manager's state lock:

        disconnected --connect() ok--------------> connected
        disconnected --reconnect loop running----> connecting --ok--> connected
        connected    --close() or send failure---> disconnected
    """
    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"


class Action(StrEnum):
    """What a loop driver does after a failure."""
    retry = "retry"
    """Wait for the configured delay, then try the same step again."""

    drop = "drop"
    """Discard the faulty unit and carry on with the next one."""

    reconnect = "reconnect"
    """Tear the link down and start the reconnect loop."""
