"""Shared storage used by the rate limiter and the summary cache."""

from .kv_store import InMemoryKeyValueStore, KeyValueStore, StoreUnavailableError, get_default_store

__all__ = ["InMemoryKeyValueStore", "KeyValueStore", "StoreUnavailableError", "get_default_store"]
