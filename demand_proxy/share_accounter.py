"""Relays mining messages to the pool and turns its share acknowledgements
into share successes for the downstream side.

Receivers are async iterables that end when their channel closes; senders
have an async ``send`` that raises ``ConnectionError`` once the other end
is gone.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, Dict

from demand_proxy.errors import ShareAccounterError, ShareAccounterErrorKind
from demand_proxy.proxy_state import ComponentState, ProxyState
from demand_proxy.task_manager import TaskManager
from demand_proxy.utils import AbortOnDrop

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmitSharesExtended:
    """A share submitted on an extended channel."""

    channel_id: int
    sequence_number: int
    job_id: int
    nonce: int = 0
    ntime: int = 0
    version: int = 0
    extranonce: bytes = b""


@dataclass(frozen=True)
class SubmitSharesSuccess:
    """Acknowledgement of accepted shares, sent downstream."""

    channel_id: int
    last_sequence_number: int
    new_submits_accepted_count: int
    new_shares_sum: int


@dataclass(frozen=True)
class ShareOk:
    """The pool's acknowledgement of one share.

    The job id of the share sits in the upper 32 bits of ``ref_job_id``.
    """

    ref_job_id: int
    share_index: int

    @property
    def job_id(self) -> int:
        return (self.ref_job_id >> 32) & 0xFFFFFFFF


@dataclass(frozen=True)
class PoolMining:
    """A mining-protocol message exchanged with the pool."""

    message: Any


@dataclass(frozen=True)
class PoolShareAccounting:
    """A share-accounting message received from the pool."""

    message: Any


@dataclass(frozen=True)
class ShareSentUp:
    """What is needed to acknowledge a share once the pool accepts it."""

    channel_id: int
    sequence_number: int


async def start(
    receiver: AsyncIterable[Any],
    sender: Any,
    up_receiver: AsyncIterable[Any],
    up_sender: Any,
    state: ProxyState,
) -> AbortOnDrop:
    """Start both relays and return the handle that stops them."""
    task_manager = TaskManager.initialize("Share accounter")
    shares_sent_up: Dict[int, ShareSentUp] = {}
    abortable = task_manager.get_aborter()
    if abortable is None:
        raise ShareAccounterError(ShareAccounterErrorKind.TASK_MANAGER_ERROR)
    try:
        await task_manager.add_relay_up(relay_up(receiver, up_sender, shares_sent_up))
        await task_manager.add_relay_down(
            relay_down(up_receiver, sender, shares_sent_up, state)
        )
    except RuntimeError as exc:
        abortable.abort()
        raise ShareAccounterError(ShareAccounterErrorKind.TASK_MANAGER_ERROR) from exc
    return abortable


def relay_up(
    receiver: AsyncIterable[Any],
    up_sender: Any,
    shares_sent_up: Dict[int, ShareSentUp],
) -> AbortOnDrop:
    """Forward mining messages to the pool, remembering submitted shares."""

    async def run() -> None:
        async for message in receiver:
            if isinstance(message, SubmitSharesExtended):
                shares_sent_up[message.job_id] = ShareSentUp(
                    message.channel_id, message.sequence_number
                )
            try:
                await up_sender.send(PoolMining(message))
            except ConnectionError:
                break

    return AbortOnDrop(asyncio.get_running_loop().create_task(run()))


def relay_down(
    up_receiver: AsyncIterable[Any],
    sender: Any,
    shares_sent_up: Dict[int, ShareSentUp],
    state: ProxyState,
) -> AbortOnDrop:
    """Forward pool messages downstream, turning ``ShareOk`` into successes."""

    async def run() -> None:
        async for message in up_receiver:
            if isinstance(message, PoolShareAccounting):
                inner = message.message
                if not isinstance(inner, ShareOk):
                    continue
                share = shares_sent_up.pop(inner.job_id, None)
                if share is None:
                    logger.error("Pool sent invalid share success")
                    state.update_pool_state(ComponentState.DOWN)
                    return
                outgoing: Any = SubmitSharesSuccess(
                    channel_id=share.channel_id,
                    last_sequence_number=share.sequence_number,
                    new_submits_accepted_count=1,
                    new_shares_sum=1,
                )
            elif isinstance(message, PoolMining):
                outgoing = message.message
            else:
                logger.error("Pool send unexpected message on mining connection")
                state.update_pool_state(ComponentState.DOWN)
                break
            try:
                await sender.send(outgoing)
            except ConnectionError as exc:
                logger.error("%s", exc)
                state.update_share_accounter_state(ComponentState.DOWN)
                break

    return AbortOnDrop(asyncio.get_running_loop().create_task(run()))