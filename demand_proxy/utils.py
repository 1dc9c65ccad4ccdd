"""Small helpers shared between the proxy's components."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

_VERSION_ROLLING_ALLOWED = 0x1FFFE000


class AbortOnDrop:
    """Owns a running task and cancels it when aborted, closed or collected.

    Wraps anything with ``cancel()`` and ``done()``, such as an asyncio task.
    """

    def __init__(self, task: Any) -> None:
        self._task = task

    @property
    def task(self) -> Any:
        return self._task

    def is_finished(self) -> bool:
        return bool(self._task.done())

    def abort(self) -> None:
        """Cancel the task if it is still running."""
        if not self._task.done():
            self._task.cancel()

    def __enter__(self) -> "AbortOnDrop":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.abort()

    def __del__(self) -> None:
        task = getattr(self, "_task", None)
        if task is None:
            return
        try:
            self.abort()
        except RuntimeError:
            # The event loop owning the task is already closed.
            pass

    def __repr__(self) -> str:
        return f"AbortOnDrop(finished={self.is_finished()})"


def sv1_rolling(
    version_rolling_mask: Optional[int],
    version_rolling_min_bit_count: Optional[int],
) -> Tuple[int, int]:
    """Choose the version rolling mask and min bit count for a miner's request.

    The requested mask is restricted to the 16 general purpose version bits;
    a missing value becomes 0.
    """
    mask = (
        version_rolling_mask & _VERSION_ROLLING_ALLOWED
        if version_rolling_mask is not None
        else 0
    )
    min_bits = version_rolling_min_bit_count if version_rolling_min_bit_count is not None else 0
    return mask, min_bits


@dataclass(frozen=True)
class UserId:
    """Identifier of a downstream user."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


class Sv1IngressError(Enum):
    """Reasons the SV1 ingress stops serving a downstream."""

    TRANSLATOR_DROPPED = "translator dropped"
    DOWNSTREAM_DROPPED = "downstream dropped"
    TASK_FAILED = "task failed"