"""Keeps a component's relay tasks alive and cancels them all together."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import List, Optional, Tuple

from demand_proxy.utils import AbortOnDrop

logger = logging.getLogger(__name__)


class TaskKind(Enum):
    """The role of a task handed to a ``TaskManager``."""

    RELAY_UP = "relay up"
    RELAY_DOWN = "relay down"


async def _hold_tasks(name: str, queue: "asyncio.Queue[Tuple[TaskKind, AbortOnDrop]]") -> None:
    held: List[Tuple[TaskKind, AbortOnDrop]] = []
    try:
        while True:
            held.append(await queue.get())
    finally:
        while not queue.empty():
            held.append(queue.get_nowait())
        logger.debug("%s task manager stopped, aborting %d tasks", name, len(held))
        for _kind, abortable in held:
            abortable.abort()


class TaskManager:
    """Owns the tasks of one component.

    Tasks added to the manager run until the manager itself is aborted
    through the handle returned by ``get_aborter``; then they are all aborted.
    """

    def __init__(
        self,
        name: str,
        queue: "asyncio.Queue[Tuple[TaskKind, AbortOnDrop]]",
        manager: "asyncio.Task[None]",
    ) -> None:
        self.name = name
        self._queue = queue
        self._manager = manager
        self._aborter: Optional[AbortOnDrop] = AbortOnDrop(manager)

    @classmethod
    def initialize(cls, name: str = "task") -> "TaskManager":
        """Start a manager; must be called from a running event loop."""
        queue: "asyncio.Queue[Tuple[TaskKind, AbortOnDrop]]" = asyncio.Queue()
        manager = asyncio.get_running_loop().create_task(_hold_tasks(name, queue))
        return cls(name, queue, manager)

    def get_aborter(self) -> Optional[AbortOnDrop]:
        """Hand out the manager's abort handle; later calls return None."""
        aborter, self._aborter = self._aborter, None
        return aborter

    async def add_task(self, kind: TaskKind, abortable: AbortOnDrop) -> None:
        """Keep ``abortable`` alive for as long as the manager runs.

        Raises RuntimeError when the manager has already stopped.
        """
        kind = TaskKind(kind)
        if self._manager.done():
            raise RuntimeError(f"{self.name} task manager has stopped")
        await self._queue.put((kind, abortable))

    async def add_relay_up(self, abortable: AbortOnDrop) -> None:
        await self.add_task(TaskKind.RELAY_UP, abortable)

    async def add_relay_down(self, abortable: AbortOnDrop) -> None:
        await self.add_task(TaskKind.RELAY_DOWN, abortable)