"""Process-local TTL cache for detail payloads served by the API.

Disabled with TPV_CACHE=0. Keys are tuples such as ("details", "<id>").
"""

import os
import time

_CACHE = {}
_STATS = {"hits": 0, "misses": 0, "evictions": 0}

# Sentinel so a cached "no match" (None payload) is still a hit.
_MISSING = object()


def _cache_enabled():
    return os.environ.get("TPV_CACHE", "1") != "0"


def cache_get(key, default=None):
    if not _cache_enabled():
        return default
    entry = _CACHE.get(key)
    if not entry:
        _STATS["misses"] += 1
        return default
    expires_at, value = entry
    if expires_at < time.time():
        _CACHE.pop(key, None)
        _STATS["misses"] += 1
        return default
    _STATS["hits"] += 1
    return value


def cache_set(key, value, ttl=30, max_entries=512):
    if not _cache_enabled():
        return
    if key not in _CACHE and len(_CACHE) >= max_entries:
        oldest_key = min(_CACHE.items(), key=lambda item: item[1][0])[0]
        _CACHE.pop(oldest_key, None)
        _STATS["evictions"] += 1
    _CACHE[key] = (time.time() + ttl, value)


def cached(key, loader, ttl=30):
    """Return the cached value for key, calling loader() on a miss.

    Loader exceptions propagate and nothing is stored.
    """
    value = cache_get(key, _MISSING)
    if value is not _MISSING:
        return value
    value = loader()
    cache_set(key, value, ttl=ttl)
    return value


def cache_clear():
    _CACHE.clear()
    _STATS["hits"] = 0
    _STATS["misses"] = 0
    _STATS["evictions"] = 0


def cache_stats():
    return dict(_STATS)
