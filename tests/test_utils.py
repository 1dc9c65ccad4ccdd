import asyncio

import pytest

from demand_proxy.utils import AbortOnDrop, Sv1IngressError, UserId, sv1_rolling


async def _forever():
    await asyncio.sleep(3600)


@pytest.mark.asyncio
async def test_abort_cancels_running_task():
    task = asyncio.create_task(_forever())
    handle = AbortOnDrop(task)
    await asyncio.sleep(0)
    assert handle.is_finished() is False
    handle.abort()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert handle.is_finished() is True
    assert task.cancelled()


@pytest.mark.asyncio
async def test_context_manager_aborts_on_exit():
    task = asyncio.create_task(_forever())
    with AbortOnDrop(task) as handle:
        await asyncio.sleep(0)
        assert not handle.is_finished()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert task.cancelled()


@pytest.mark.asyncio
async def test_finished_task_reported_and_not_cancelled():
    async def quick():
        return 5

    task = asyncio.create_task(quick())
    handle = AbortOnDrop(task)
    assert await task == 5
    assert handle.is_finished()
    handle.abort()
    assert not task.cancelled()
    assert task.result() == 5


@pytest.mark.asyncio
async def test_dropping_handle_cancels_task():
    task = asyncio.create_task(_forever())
    handle = AbortOnDrop(task)
    del handle
    with pytest.raises(asyncio.CancelledError):
        await task
    assert task.cancelled()


def test_sv1_rolling_masks_to_allowed_bits():
    assert sv1_rolling(0xFFFFFFFF, 16) == (0x1FFFE000, 16)


def test_sv1_rolling_defaults_to_zero():
    assert sv1_rolling(None, None) == (0, 0)


@pytest.mark.parametrize("mask", [0, 0x1FFFE000, 0x00001FFF, 0xE0000000, 0x12345678])
def test_sv1_rolling_mask_is_subset(mask):
    result, min_bits = sv1_rolling(mask, None)
    assert result & ~0x1FFFE000 == 0
    assert result & mask == result
    assert min_bits == 0


def test_sv1_rolling_bits_outside_window_dropped():
    assert sv1_rolling(0x00001FFF, 2) == (0, 2)


def test_user_id_display_and_equality():
    assert str(UserId(42)) == "42"
    assert str(UserId(-3)) == "-3"
    assert UserId(42) == UserId(42)
    assert UserId(1) != UserId(2)


def test_sv1_ingress_error_members_distinct():
    members = list(Sv1IngressError)
    assert {m.name for m in members} == {
        "TRANSLATOR_DROPPED",
        "DOWNSTREAM_DROPPED",
        "TASK_FAILED",
    }
    assert len({m.value for m in members}) == 3
    for member in members:
        assert Sv1IngressError(member.value) is member