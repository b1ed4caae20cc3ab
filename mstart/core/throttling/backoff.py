import random
from dataclasses import dataclass, field


@dataclass
class ExponentialBackoff:
    """
    Delay generator for the reconnect loop.

    Each call to `next_delay()` returns the current delay plus an optional
    random jitter, then grows the current delay by `factor`, capped at
    `maximum`:

        delay    = current + uniform(0, jitter)
        current  = min(current * factor, maximum)

    The link defaults to a factor of 1 and no jitter, which degenerates to
    the fixed retry delay M-START deployments rely on: a failed connect is
    retried every `initial` seconds so that every OS dependent resource of
    the previous socket has been released.
    """

    initial: float = 20.0
    """Delay (in seconds) before the first retry."""

    maximum: float = 20.0
    """Upper bound of the delay, jitter excluded."""

    factor: float = 1.0
    """Growth applied to the delay after each retry."""

    jitter: float = 0.0
    """Maximum random jitter added to each delay."""

    _current: float = field(init=False, repr=False)
    _attempts: int = field(init=False, repr=False, default=0)

    def __post_init__(self) -> None:
        if self.initial < 0:
            raise ValueError("initial delay must be positive")
        if self.factor < 1.0:
            raise ValueError("factor must be greater or equal to 1")
        self.maximum = max(self.maximum, self.initial)
        self._current = self.initial

    @property
    def attempts(self) -> int:
        """Number of delays handed out since the last reset."""
        return self._attempts

    def next_delay(self) -> float:
        delay = self._current
        self._current = min(self._current * self.factor, self.maximum)
        self._attempts += 1

        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)

        return delay

    def reset(self) -> None:
        """Start over from the initial delay, typically after a successful connect."""
        self._current = self.initial
        self._attempts = 0
