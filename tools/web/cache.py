"""Memoizing cache for expensive research operations (URL summarization)."""

import functools
import hashlib
import json
from typing import Any, Awaitable, Callable, Sequence

from storage.kv_store import KeyValueStore
from utils.logger import get_logger

logger = get_logger(__name__)


def make_cache_key(operation: str, args: Sequence[Any]) -> str:
    """
    Build a deterministic cache key.

    Arguments are serialized canonically (sorted keys, compact separators) so
    semantically identical calls always hash to the same key.

    Args:
        operation: Operation name, e.g. "summarize-url"
        args: Ordered argument values

    Returns:
        "{operation}:{sha256 hex}"
    """
    canonical = json.dumps(
        list(args), sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )
    digest = hashlib.sha256(f"{operation}\x00{canonical}".encode("utf-8")).hexdigest()
    return f"{operation}:{digest}"


class MemoizingCache:
    """
    Get-or-compute cache over the shared key-value store.

    Concurrent misses for one key may compute twice; the last write wins and
    later calls converge on the cached value. Store faults never fail the call.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def _read(self, key: str) -> tuple[bool, Any]:
        try:
            raw = await self.store.get(key)
        except Exception as e:
            logger.error(
                "Cache read failed; computing uncached",
                extra={"extra_fields": {"key": key, "error": str(e), "error_type": type(e).__name__}},
            )
            return False, None
        if raw is None:
            return False, None
        try:
            return True, json.loads(raw)
        except ValueError:
            logger.warning("Discarding corrupt cache entry", extra={"extra_fields": {"key": key}})
            return False, None

    async def _write(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            await self.store.set(key, json.dumps(value, default=str), ttl_seconds)
        except Exception as e:
            logger.error(
                "Cache write failed",
                extra={"extra_fields": {"key": key, "error": str(e), "error_type": type(e).__name__}},
            )

    async def get_or_compute(
        self, key: str, ttl_seconds: int, compute: Callable[[], Awaitable[Any]]
    ) -> tuple[Any, bool]:
        """
        Return the cached value for key, computing and storing it on a miss.

        Args:
            key: Cache key (see make_cache_key)
            ttl_seconds: Entry lifetime
            compute: Async zero-argument function producing a JSON-serializable value

        Returns:
            Tuple of (value, cache_hit)
        """
        hit, value = await self._read(key)
        if hit:
            logger.debug("Cache hit", extra={"extra_fields": {"key": key}})
            return value, True

        value = await compute()
        await self._write(key, value, ttl_seconds)
        return value, False


def memoize(
    cache: MemoizingCache,
    operation: str,
    ttl_seconds: int,
    key_args: Callable[..., Sequence[Any]] | None = None,
):
    """
    Decorate an async function so its results are memoized in cache.

    Args:
        cache: Cache to use
        operation: Operation name folded into every key
        ttl_seconds: Entry lifetime
        key_args: Maps the call's (*args, **kwargs) to the values that identify
            it; defaults to all positional args followed by sorted kwargs
    """

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            if key_args is not None:
                identity = list(key_args(*args, **kwargs))
            else:
                identity = [*args, sorted(kwargs.items())]
            key = make_cache_key(operation, identity)
            value, _ = await cache.get_or_compute(key, ttl_seconds, lambda: fn(*args, **kwargs))
            return value

        return wrapper

    return decorator
