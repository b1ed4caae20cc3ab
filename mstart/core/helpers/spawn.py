import asyncio
import logging
from typing import Any, Coroutine


class TaskSpawner:
    """
    Spawns and supervises the background tasks of the link.

    Every task is tracked until it completes. Failures that escape a task
    are logged with their traceback, cancellations are not: the read loop
    and the reconnect loop are cancelled on purpose when the link is
    closed.

    The event loop is resolved when the first task is spawned, so a
    spawner may be built outside of a running loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = logging.getLogger("core.helpers.spawn")

    @property
    def remaining_tasks(self) -> int:
        return len(self._tasks)

    def on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            self._logger.debug(f"Task {task.get_name()} cancelled")
            return

        if ex := task.exception():
            self._logger.error(
                f"Error occurred in task {task.get_name()}: {ex}",
                exc_info=ex
            )

    def spawn(
        self,
        coro: Coroutine[Any, Any, None],
        name: str | None = None,
    ) -> asyncio.Task[Any]:
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(coro, name=name)
        task.add_done_callback(self.on_done)
        self._tasks.add(task)
        return task

    async def cancel_all(self) -> None:
        """Cancel every tracked task and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
