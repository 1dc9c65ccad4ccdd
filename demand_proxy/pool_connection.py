"""Connection setup and message relays between the proxy and the mining pool.

Receivers are async iterables that end when their channel closes; senders
have an async ``send`` that raises ``ConnectionError`` once the other end
is gone.
"""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
import string
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, AsyncIterable, Optional

from demand_proxy.errors import PoolConnectionError, PoolErrorKind
from demand_proxy.proxy_state import ComponentState, ProxyState
from demand_proxy.utils import AbortOnDrop

logger = logging.getLogger(__name__)

DEFAULT_TIMER = 5.0

_ALPHANUMERIC = string.ascii_letters + string.digits
_DEVICE_ID_LENGTH = 16
_FLAGS_WORK_SELECTION = 0b0110
_FLAGS_NO_WORK_SELECTION = 0b0100


class Protocol(IntEnum):
    """Sub-protocols that a connection can be set up for."""

    MINING_PROTOCOL = 0
    JOB_DECLARATION_PROTOCOL = 1
    TEMPLATE_DISTRIBUTION_PROTOCOL = 2


@dataclass(frozen=True)
class SetupConnection:
    """First message sent to the pool on a new connection."""

    protocol: Protocol
    min_version: int
    max_version: int
    flags: int
    endpoint_host: str
    endpoint_port: int
    vendor: str
    hardware_version: str
    firmware: str
    device_id: str


@dataclass(frozen=True)
class SetupConnectionSuccess:
    """The pool's acceptance of a ``SetupConnection``."""

    used_version: int
    flags: int


def get_mining_setup_connection_msg(
    work_selection: bool = True, token: Optional[str] = None
) -> SetupConnection:
    """Build the setup message for a mining connection.

    Without an explicit ``token`` the ``TOKEN`` environment variable is used.
    """
    if token is None:
        token = os.environ.get("TOKEN")
        if token is None:
            raise RuntimeError("Missing TOKEN environment variable")
    prefix = "".join(secrets.choice(_ALPHANUMERIC) for _ in range(_DEVICE_ID_LENGTH))
    return SetupConnection(
        protocol=Protocol.MINING_PROTOCOL,
        min_version=2,
        max_version=2,
        flags=_FLAGS_WORK_SELECTION if work_selection else _FLAGS_NO_WORK_SELECTION,
        endpoint_host="0.0.0.0",
        endpoint_port=50,
        vendor="",
        hardware_version="",
        firmware="",
        device_id=f"{prefix}::POOLED::{token}",
    )


async def mining_setup_connection(
    recv: AsyncIterable[Any],
    send: Any,
    setup_connection: SetupConnection,
    timer: Optional[float] = DEFAULT_TIMER,
) -> SetupConnectionSuccess:
    """Send ``setup_connection`` and wait up to ``timer`` seconds for success."""
    try:
        await send.send(setup_connection)
    except ConnectionError:
        logger.error("Failed to send setup connection message")
        raise PoolConnectionError(PoolErrorKind.UNRECOVERABLE) from None
    timeout = DEFAULT_TIMER if timer is None else timer
    try:
        reply = await asyncio.wait_for(anext(aiter(recv)), timeout)
    except (asyncio.TimeoutError, StopAsyncIteration):
        logger.error("Failed to setup connection: Timeout")
        raise PoolConnectionError(PoolErrorKind.TIMEOUT) from None
    if isinstance(reply, SetupConnectionSuccess):
        return reply
    logger.error("Unexpected Message: %r", reply)
    raise PoolConnectionError(PoolErrorKind.UNEXPECTED_MESSAGE)


def relay_up(recv: AsyncIterable[Any], send: Any, state: ProxyState) -> AbortOnDrop:
    """Forward messages from the proxy to the pool until either side closes."""

    async def run() -> None:
        async for message in recv:
            try:
                await send.send(message)
            except ConnectionError:
                logger.error("Mining upstream failed")
                state.update_pool_state(ComponentState.DOWN)
                break

    return AbortOnDrop(asyncio.get_running_loop().create_task(run()))


def relay_down(recv: AsyncIterable[Any], send: Any, state: ProxyState) -> AbortOnDrop:
    """Forward pool messages into the proxy.

    A ``None`` item stands for a frame that could not be decoded and ends the
    relay. Whenever the relay ends the pool is marked down.
    """

    async def run() -> None:
        async for message in recv:
            if message is None:
                logger.error("Mining Upstream send invalid message. Disconnecting")
                break
            try:
                await send.send(message)
            except ConnectionError:
                logger.error("Internal Mining downstream not available")
                state.update_inconsistency(1)
        logger.error("Failed to receive msg from Pool")
        state.update_pool_state(ComponentState.DOWN)

    return AbortOnDrop(asyncio.get_running_loop().create_task(run()))