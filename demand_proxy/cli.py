"""Command-line options, hashrate parsing and endpoint selection for the proxy."""

from __future__ import annotations

import argparse
import logging
import math
import re
import struct
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

TRANSLATOR_BUFFER_SIZE = 32
MIN_EXTRANONCE_SIZE = 6
MIN_EXTRANONCE2_SIZE = 5
UPSTREAM_EXTRANONCE1_SIZE = 15
DEFAULT_SV1_HASHPOWER = 100_000_000_000_000.0
SHARE_PER_MIN = 10.0
CHANNEL_DIFF_UPDTATE_INTERVAL = 10
MAX_LEN_DOWN_MSG = 10000
MAIN_POOL_ADDRESS = "mining.dmnd.work:2000"
TEST_POOL_ADDRESS = (
    "k8s-default-pool-de2d9b37ea-6bc40843aed871f2.elb.eu-central-1.amazonaws.com:2000"
)
MAIN_AUTH_PUB_KEY = "9bQHWXsQ2J9TRFTaxRh3KjoxdyLRfWVEy25YHtKF8y8gotLoCZZ"
TEST_AUTH_PUB_KEY = "9auqWEzQDVyd2oe1JVGFLMLHZtCo2FFqZwtKA5gd9xbuEu7PH72"
DEFAULT_LISTEN_ADDRESS = "0.0.0.0:32767"

LOG_LEVELS = frozenset({"trace", "debug", "info", "warn", "error"})

_NUMBER = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)",
    re.IGNORECASE,
)


def _f32(value: float) -> float:
    """Round ``value`` to single precision, overflowing to infinity."""
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


class HashUnit(Enum):
    """Units a hashrate can be given in."""

    TERA = "T"
    PETA = "P"
    EXA = "E"

    def multiplier(self) -> float:
        """Hashes per second in one of this unit."""
        return _MULTIPLIERS[self]

    @classmethod
    def from_str(cls, s: str) -> Optional["HashUnit"]:
        """Look up a unit by its letter, ignoring case; None if unknown."""
        try:
            return cls(s.upper())
        except ValueError:
            return None


_MULTIPLIERS = {
    HashUnit.TERA: _f32(1e12),
    HashUnit.PETA: _f32(1e15),
    HashUnit.EXA: _f32(1e18),
}


def format_hashrate(hashrate: float) -> str:
    """Render a hashrate in h/s with two decimals and the largest fitting unit."""
    value = _f32(hashrate)
    for unit in (HashUnit.EXA, HashUnit.PETA, HashUnit.TERA):
        scale = unit.multiplier()
        if value >= scale:
            return f"{_f32(value / scale):.2f}{unit.value}"
    return f"{value:.2f}"


def parse_hashrate(hashrate_str: str) -> float:
    """Parse a hashrate such as ``10T``, ``2.5P`` or ``5E`` into h/s.

    Raises ValueError for an empty string, a bad number, an unknown unit or a
    value too large to represent.
    """
    text = hashrate_str.strip()
    if not text:
        raise ValueError(
            "Hashrate cannot be empty. Expected format: '<number><unit>' "
            "(e.g., '10T', '2.5P', '5E'"
        )
    unit_text, number_text = text[-1], text[:-1]
    if not _NUMBER.fullmatch(number_text):
        raise ValueError(
            f"Invalid number '{number_text}'. Expected format: '<number><unit>' "
            "(e.g., '10T', '2.5P', '5')"
        )
    number = _f32(float(number_text))
    unit = HashUnit.from_str(unit_text)
    if unit is None:
        raise ValueError(
            f"Invalid unit '{unit_text}'. Expected 'T' (Terahash), 'P' (Petahash), "
            "or 'E' (Exahash). Example: '10T', '2.5P', '5'"
        )
    hashrate = _f32(number * unit.multiplier())
    if math.isinf(hashrate) or math.isnan(hashrate):
        raise ValueError("Hashrate too large or invalid")
    return hashrate


def normalize_log_level(level: str, default: str) -> str:
    """Return ``level`` if it names a known log level, otherwise ``default``."""
    if level.lower() in LOG_LEVELS:
        return level
    return default


def pool_address(test: bool) -> str:
    """The pool endpoint to connect to."""
    return TEST_POOL_ADDRESS if test else MAIN_POOL_ADDRESS


def auth_pub_key(test: bool) -> str:
    """The pool's authority public key for the chosen endpoint."""
    return TEST_AUTH_PUB_KEY if test else MAIN_AUTH_PUB_KEY


@dataclass(frozen=True)
class Args:
    """Options the proxy is started with."""

    test: bool = False
    downstream_hashrate: Optional[float] = None
    loglevel: str = "info"
    noise_connection_log: str = "off"

    @property
    def hashpower(self) -> float:
        """Expected downstream hashrate, falling back to the default."""
        if self.downstream_hashrate is None:
            return _f32(DEFAULT_SV1_HASHPOWER)
        return self.downstream_hashrate


def _hashrate_argument(value: str) -> float:
    try:
        return parse_hashrate(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Stratum mining proxy", allow_abbrev=False
    )
    parser.add_argument(
        "--test", action="store_true", help="use the test endpoint"
    )
    parser.add_argument(
        "-d",
        "--d",
        dest="downstream_hashrate",
        type=_hashrate_argument,
        default=None,
        help="expected downstream hashrate, e.g. 10T, 2.5P, 5E",
    )
    parser.add_argument("-l", "--loglevel", dest="loglevel", default="info")
    parser.add_argument("-n", "--nc", dest="noise_connection_log", default="off")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> Args:
    """Parse command-line options; exits with a usage message on bad input."""
    namespace = _parser().parse_args(None if argv is None else list(argv))
    return Args(
        test=namespace.test,
        downstream_hashrate=namespace.downstream_hashrate,
        loglevel=namespace.loglevel,
        noise_connection_log=namespace.noise_connection_log,
    )


def log_filter(args: Args) -> str:
    """Build the log filter directive, replacing invalid levels with defaults."""
    log_level = normalize_log_level(args.loglevel, "info")
    if log_level != args.loglevel:
        logger.error("Invalid log level '%s'. Defaulting to 'info'.", args.loglevel)
    noise_level = normalize_log_level(args.noise_connection_log, "off")
    if noise_level != args.noise_connection_log:
        logger.error(
            "Invalid log level for noise_connection '%s' Defaulting to 'off'.",
            args.noise_connection_log,
        )
    return f"{log_level},demand_sv2_connection::noise_connection_tokio={noise_level}"


@dataclass(frozen=True)
class Reconnect:
    """How the proxy restarts: with a new upstream address, or without one."""

    new_upstream: Optional[Tuple[str, int]] = None

    @property
    def has_new_upstream(self) -> bool:
        return self.new_upstream is not None

    @classmethod
    def no_upstream(cls) -> "Reconnect":
        return cls(None)


__all_parsers__: List[str] = []