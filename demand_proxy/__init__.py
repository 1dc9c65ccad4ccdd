"""Mining proxy core: health state, pool connection setup, share accounting relays and CLI helpers."""

__version__ = "0.1.2"