import threading

import pytest

from demand_proxy.proxy_state import (
    ComponentState,
    DownstreamType,
    ProxyState,
    ProxyStates,
    UpstreamType,
)


@pytest.fixture
def state():
    return ProxyState()


def test_fresh_state_is_up(state):
    assert state.get_errors() == []
    assert state.is_proxy_down() == (False, None)


def test_pool_down_reported(state):
    state.update_pool_state(ComponentState.DOWN)
    assert state.get_errors() == [ProxyStates("Pool", ComponentState.DOWN)]
    down, description = state.is_proxy_down()
    assert down is True
    assert description == "Pool(Down)"


@pytest.mark.parametrize(
    "method, component",
    [
        ("update_pool_state", "Pool"),
        ("update_tp_state", "Tp"),
        ("update_jd_state", "Jd"),
        ("update_share_accounter_state", "ShareAccounter"),
        ("update_translator_state", "Translator"),
    ],
)
def test_each_component_down(state, method, component):
    getattr(state, method)(ComponentState.DOWN)
    errors = state.get_errors()
    assert [e.component for e in errors] == [component]
    getattr(state, method)(ComponentState.UP)
    assert state.get_errors() == []


def test_inconsistency(state):
    state.update_inconsistency(1)
    assert state.get_errors() == [ProxyStates("InternalInconsistency", 1)]
    assert state.is_proxy_down() == (True, "InternalInconsistency(1)")
    state.update_inconsistency(None)
    assert state.is_proxy_down() == (False, None)


def test_downstream_replaced_not_appended(state):
    state.update_downstream_state(DownstreamType.TRANSLATOR_DOWNSTREAM)
    state.update_downstream_state(DownstreamType.JD_CLIENT_MINING_DOWNSTREAM)
    assert state.downstream == (DownstreamType.JD_CLIENT_MINING_DOWNSTREAM,)
    errors = state.get_errors()
    assert errors == [
        ProxyStates("Downstream", (DownstreamType.JD_CLIENT_MINING_DOWNSTREAM,))
    ]
    assert str(errors[0]) == "Downstream(Down([JdClientMiningDownstream]))"


def test_upstream_down(state):
    state.update_upstream_state(UpstreamType.TRANSLATOR_UPSTREAM)
    errors = state.get_errors()
    assert len(errors) == 1
    assert errors[0].component == "Upstream"
    assert errors[0].detail == (UpstreamType.TRANSLATOR_UPSTREAM,)
    assert "TranslatorUpstream" in str(errors[0])


def test_error_order_and_join(state):
    state.update_upstream_state(UpstreamType.JDC_MINING_UPSTREAM)
    state.update_inconsistency(7)
    state.update_translator_state(ComponentState.DOWN)
    state.update_pool_state(ComponentState.DOWN)
    errors = state.get_errors()
    assert [e.component for e in errors] == [
        "Pool",
        "Translator",
        "InternalInconsistency",
        "Upstream",
    ]
    down, description = state.is_proxy_down()
    assert down
    assert description == ", ".join(str(e) for e in errors)


def test_update_proxy_state_up_resets_everything(state):
    state.update_pool_state(ComponentState.DOWN)
    state.update_tp_state(ComponentState.DOWN)
    state.update_jd_state(ComponentState.DOWN)
    state.update_share_accounter_state(ComponentState.DOWN)
    state.update_translator_state(ComponentState.DOWN)
    state.update_inconsistency(3)
    state.update_downstream_state(DownstreamType.TRANSLATOR_DOWNSTREAM)
    state.update_upstream_state(UpstreamType.TRANSLATOR_UPSTREAM)
    assert len(state.get_errors()) == 8
    state.update_proxy_state_up()
    assert state.get_errors() == []
    assert state == ProxyState()


def test_invalid_state_value_rejected(state):
    with pytest.raises(ValueError):
        state.update_pool_state("sideways")
    assert state.get_errors() == []


def test_concurrent_updates(state):
    def worker():
        for _ in range(200):
            state.update_pool_state(ComponentState.DOWN)
            state.get_errors()
            state.update_proxy_state_up()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert state.is_proxy_down() == (False, None)