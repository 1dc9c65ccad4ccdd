"""Errors raised by the pool connection and the share accounter."""

from __future__ import annotations

from enum import Enum, auto
from typing import Optional


class PoolErrorKind(Enum):
    """What went wrong while talking to the mining pool."""

    BINARY_SV2 = auto()
    SV2_CONNECTION = auto()
    FRAMING_SV2 = auto()
    IO = auto()
    ROLES_SV2_LOGIC = auto()
    UPSTREAM_INCOMING = auto()
    TIMEOUT = auto()
    UNRECOVERABLE = auto()
    UNEXPECTED_MESSAGE = auto()
    MINING_POOL_MUTEX_CORRUPTED = auto()
    MINING_POOL_TASK_MANAGER_FAILED = auto()


_POOL_MESSAGES = {
    PoolErrorKind.BINARY_SV2: "Binary SV2 error: `{cause}`",
    PoolErrorKind.SV2_CONNECTION: "Demand SV2 connectiom  error: `{cause}",
    PoolErrorKind.FRAMING_SV2: "Framing SV2 error: `{cause}`",
    PoolErrorKind.IO: "I/O error: `{cause}",
    PoolErrorKind.ROLES_SV2_LOGIC: "Roles SV2 Logic Error: `{cause}`",
    PoolErrorKind.UPSTREAM_INCOMING: "Upstream parse incoming error: `{cause}`",
    PoolErrorKind.UNRECOVERABLE: "Unrecoverable error",
    PoolErrorKind.UNEXPECTED_MESSAGE: "Unexpected Message Type",
    PoolErrorKind.TIMEOUT: "Timeout Elapsed",
    PoolErrorKind.MINING_POOL_MUTEX_CORRUPTED: "Mining Pool Mutex Corrupted",
    PoolErrorKind.MINING_POOL_TASK_MANAGER_FAILED: "Mining Pool TaskManager Error",
}

_KINDS_WITH_CAUSE = frozenset(
    kind for kind, template in _POOL_MESSAGES.items() if "{cause}" in template
)


class PoolConnectionError(Exception):
    """Failure to set up or keep the connection to the mining pool.

    Kinds that wrap a lower-level failure need its ``cause``.
    """

    def __init__(self, kind: PoolErrorKind, cause: Optional[object] = None) -> None:
        kind = PoolErrorKind(kind)
        if kind in _KINDS_WITH_CAUSE and cause is None:
            raise ValueError(f"{kind.name} needs the underlying cause")
        self.kind = kind
        self.cause = cause
        message = _POOL_MESSAGES[kind].format(cause=repr(cause))
        super().__init__(message)
        if isinstance(cause, BaseException):
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.args[0]


class ShareAccounterErrorKind(Enum):
    """What went wrong while starting the share accounter."""

    TASK_MANAGER_MUTEX_CORRUPTED = auto()
    TASK_MANAGER_ERROR = auto()


_SHARE_ACCOUNTER_MESSAGES = {
    ShareAccounterErrorKind.TASK_MANAGER_MUTEX_CORRUPTED: (
        "Share Accounter Task Manager Mutex Corrupted"
    ),
    ShareAccounterErrorKind.TASK_MANAGER_ERROR: (
        "Share Accounter TaskManager Failed to add Task"
    ),
}


class ShareAccounterError(Exception):
    """Failure to start the share accounter."""

    def __init__(self, kind: ShareAccounterErrorKind) -> None:
        self.kind = ShareAccounterErrorKind(kind)
        super().__init__(_SHARE_ACCOUNTER_MESSAGES[self.kind])

    def __str__(self) -> str:
        return self.args[0]