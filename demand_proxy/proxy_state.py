"""Global health state of the proxy and its components."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)


class ComponentState(Enum):
    """Whether a single component of the proxy is working."""

    UP = "Up"
    DOWN = "Down"

    def __str__(self) -> str:
        return self.value


class DownstreamType(Enum):
    """Downstream roles that can fail."""

    JD_CLIENT_MINING_DOWNSTREAM = "JdClientMiningDownstream"
    TRANSLATOR_DOWNSTREAM = "TranslatorDownstream"

    def __str__(self) -> str:
        return self.value


class UpstreamType(Enum):
    """Upstream roles that can fail."""

    JDC_MINING_UPSTREAM = "JDCMiningUpstream"
    TRANSLATOR_UPSTREAM = "TranslatorUpstream"

    def __str__(self) -> str:
        return self.value


Detail = Union[ComponentState, int, Tuple[DownstreamType, ...], Tuple[UpstreamType, ...]]


@dataclass(frozen=True)
class ProxyStates:
    """One failing part of the proxy, as reported by ``ProxyState.get_errors``.

    ``component`` is one of ``Pool``, ``Tp``, ``Jd``, ``ShareAccounter``,
    ``Translator``, ``InternalInconsistency``, ``Downstream`` or ``Upstream``.
    """

    component: str
    detail: Detail

    def __str__(self) -> str:
        if isinstance(self.detail, tuple):
            listed = ", ".join(str(item) for item in self.detail)
            inner = f"Down([{listed}])"
        else:
            inner = str(self.detail)
        return f"{self.component}({inner})"


@dataclass
class ProxyState:
    """Thread-safe record of which parts of the proxy are up or down.

    Empty ``downstream``/``upstream`` tuples mean the side is up.
    """

    pool: ComponentState = ComponentState.UP
    tp: ComponentState = ComponentState.UP
    jd: ComponentState = ComponentState.UP
    share_accounter: ComponentState = ComponentState.UP
    translator: ComponentState = ComponentState.UP
    inconsistency: Optional[int] = None
    downstream: Tuple[DownstreamType, ...] = ()
    upstream: Tuple[UpstreamType, ...] = ()
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def _set(self, name: str, value: object) -> None:
        with self._lock:
            setattr(self, name, value)

    def update_pool_state(self, state: ComponentState) -> None:
        logger.info("Updating PoolState state to %s", state)
        self._set("pool", ComponentState(state))

    def update_tp_state(self, state: ComponentState) -> None:
        logger.info("Updating TpState state to %s", state)
        self._set("tp", ComponentState(state))

    def update_jd_state(self, state: ComponentState) -> None:
        logger.info("Updating JdState state to %s", state)
        self._set("jd", ComponentState(state))

    def update_translator_state(self, state: ComponentState) -> None:
        logger.info("Updating Translator state to %s", state)
        self._set("translator", ComponentState(state))

    def update_share_accounter_state(self, state: ComponentState) -> None:
        logger.info("Updating ShareAccounterState state to %s", state)
        self._set("share_accounter", ComponentState(state))

    def update_inconsistency(self, code: Optional[int]) -> None:
        logger.info("Updating Internal Inconsistency state to %s", code)
        self._set("inconsistency", code)

    def update_downstream_state(self, downstream_type: DownstreamType) -> None:
        """Mark the downstream side as down because of ``downstream_type``."""
        logger.info("Updating Downstream state to %s", downstream_type)
        self._set("downstream", (DownstreamType(downstream_type),))

    def update_upstream_state(self, upstream_type: UpstreamType) -> None:
        """Mark the upstream side as down because of ``upstream_type``."""
        logger.info("Updating Upstream state to %s", upstream_type)
        self._set("upstream", (UpstreamType(upstream_type),))

    def update_proxy_state_up(self) -> None:
        """Reset every component to up and clear any inconsistency."""
        with self._lock:
            self.pool = ComponentState.UP
            self.jd = ComponentState.UP
            self.translator = ComponentState.UP
            self.tp = ComponentState.UP
            self.share_accounter = ComponentState.UP
            self.upstream = ()
            self.downstream = ()
            self.inconsistency = None

    def is_proxy_down(self) -> Tuple[bool, Optional[str]]:
        """Return whether anything is down, with a description of what."""
        errors = self.get_errors()
        if not errors:
            return False, None
        return True, ", ".join(str(error) for error in errors)

    def get_errors(self) -> list[ProxyStates]:
        """List every failing component, in a fixed order."""
        with self._lock:
            errors: list[ProxyStates] = []
            for component, value in (
                ("Pool", self.pool),
                ("Tp", self.tp),
                ("Jd", self.jd),
                ("ShareAccounter", self.share_accounter),
                ("Translator", self.translator),
            ):
                if value is ComponentState.DOWN:
                    errors.append(ProxyStates(component, value))
            if self.inconsistency is not None:
                errors.append(ProxyStates("InternalInconsistency", self.inconsistency))
            if self.downstream:
                errors.append(ProxyStates("Downstream", self.downstream))
            if self.upstream:
                errors.append(ProxyStates("Upstream", self.upstream))
            return errors