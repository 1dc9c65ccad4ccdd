# demand_proxy

Building blocks for a mining proxy that sits between SV1 miners and an
upstream pool. The package uses only the standard library and needs
Python 3.10 or newer.

## Modules

- `demand_proxy.proxy_state`: `ProxyState`, a thread-safe record of which
  parts of the proxy are up or down.
- `demand_proxy.pool_connection`: the `SetupConnection` message, the setup
  handshake with a timeout, and the two relays to and from the pool.
- `demand_proxy.share_accounter`: relays that remember submitted extended
  shares and turn the pool's `ShareOk` into `SubmitSharesSuccess`.
- `demand_proxy.task_manager`: `TaskManager`, which keeps relay tasks alive
  and aborts them all together.
- `demand_proxy.utils`: `AbortOnDrop`, `sv1_rolling`, `UserId` and
  `Sv1IngressError`.
- `demand_proxy.errors`: `PoolConnectionError` and `ShareAccounterError`.
- `demand_proxy.cli`: hashrate parsing and formatting, option parsing, log
  filter and endpoint selection.

## Hashrates

```python
from demand_proxy.cli import parse_hashrate, format_hashrate

rate = parse_hashrate("2.5P")   # hashes per second, single precision
print(format_hashrate(rate))     # "2.50P"
```

The unit is the last character, and it may be `T`, `P` or `E` in either
case. `parse_hashrate` raises `ValueError` in these cases:

- the input is empty;
- the number is invalid;
- the unit is unknown;
- the result is infinite or NaN.

`format_hashrate` picks the largest unit that fits. Values below one
terahash get no unit.

## Options

`parse_args(argv)` returns an `Args` and accepts these options:

| Option | Meaning |
|--------|---------|
| `--test` | use the test endpoint |
| `-d` / `--d` | expected downstream hashrate, such as `10T` |
| `-l` / `--loglevel` | log level, default `info` |
| `-n` / `--nc` | log level for the noise connection, default `off` |

`Args.hashpower` falls back to 100T when no hashrate is given.

`log_filter(args)` builds the filter string. Any level other than
`trace`, `debug`, `info`, `warn` or `error` is replaced:

- an invalid main level becomes `info`;
- an invalid noise connection level becomes `off`.

`pool_address(test)` and `auth_pub_key(test)` return the pool endpoint and
the authority key for the main or test setup. `Reconnect` says whether the
proxy restarts with a new upstream address or without one.

## Tracking proxy health

```python
from demand_proxy.proxy_state import ProxyState, ComponentState

state = ProxyState()
state.update_pool_state(ComponentState.DOWN)
state.update_inconsistency(1)

down, reason = state.is_proxy_down()
# down is True; reason is "Pool(Down), InternalInconsistency(1)"
state.update_proxy_state_up()
```

`get_errors()` returns one `ProxyStates` per failing part, in this order:

1. pool
2. template provider (`Tp`)
3. job declarator (`Jd`)
4. share accounter
5. translator
6. internal inconsistency
7. downstream
8. upstream

## Pool connection

```python
from demand_proxy.pool_connection import get_mining_setup_connection_msg

msg = get_mining_setup_connection_msg(work_selection=True, token="token")
```

The message asks for the mining protocol, version 2, from endpoint
`0.0.0.0:50`. The flags depend on `work_selection`:

| `work_selection` | flags |
|------------------|-------|
| `True` | `0b110` |
| `False` | `0b100` |

The device id is 16 random alphanumeric characters, then `::POOLED::`, then
the token. When no token is given, the `TOKEN` environment variable is used.
If that variable is unset, the function raises `RuntimeError`.

`await mining_setup_connection(recv, send, setup_connection, timer)` sends
the message and waits up to `timer` seconds (5 by default) for the first
reply. It returns that reply if it is a `SetupConnectionSuccess`. Otherwise it
raises `PoolConnectionError` with one of these kinds:

| Kind | When |
|------|------|
| `UNRECOVERABLE` | the send fails |
| `TIMEOUT` | no reply arrives in time, or the channel closes |
| `UNEXPECTED_MESSAGE` | the reply is anything other than a `SetupConnectionSuccess` |

A receiver is an async iterable. A sender has an async `send` that raises
`ConnectionError` once the other end is gone. The relays use the
`ProxyState` you pass in as follows:

- `relay_up` marks the pool down when sending fails.
- `relay_down` records inconsistency `1` when the inner side is gone.
- `relay_down` marks the pool down when it ends, or when it meets a `None`
  item, which stands for a frame that could not be decoded.

## Share accounting

`await share_accounter.start(receiver, sender, up_receiver, up_sender, state)`
starts both relays under a `TaskManager`. It returns the `AbortOnDrop` that
stops them both.

Upward messages are wrapped in `PoolMining`. A `SubmitSharesExtended` is
remembered by its job id. When a `PoolShareAccounting(ShareOk(...))` arrives,
the relay sends a `SubmitSharesSuccess` for the matching share. The match uses
the job id, which is stored in the upper 32 bits of `ref_job_id`. The relay
updates `state` in these cases:

- an unknown job id marks the pool down;
- an unexpected message marks the pool down;
- a failed send downstream marks the share accounter down.

## What the package does not do

The package has no command to run. In particular, it does not do any of the
following:

- open TCP connections or perform the encrypted handshake with the pool;
- encode or decode binary frames;
- listen for SV1 miners or translate SV1 to SV2;
- run a job declaration client;
- choose between several upstreams.

The pool connection and share accounting functions work on whatever channel
objects you give them.

## Tests

Install the `test` extra (pytest and pytest-asyncio) and run `pytest`.