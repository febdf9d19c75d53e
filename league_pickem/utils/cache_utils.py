"""
Cache utilities for League Table Pick'em
Caches slow lookups (remote standings, season lists) through Flask-Caching
"""

import functools

from flask import current_app

from league_pickem import cache


def make_cache_key(namespace, *args, **kwargs):
    """Build a cache key from a namespace and call arguments"""
    args_str = "_".join(str(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"{namespace}_{args_str}_{kwargs_str}".replace("/", "_").replace(" ", "_")


def cached_method(namespace, timeout_setting="CACHE_DEFAULT_TIMEOUT"):
    """
    Decorator for caching the result of an instance method

    The instance itself is left out of the key so every provider instance
    shares the cached value. None results are never cached.

    Args:
        namespace: Prefix for cache key generation
        timeout_setting: Config key holding the cache timeout in seconds
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(self, *args, **kwargs):
            cache_key = make_cache_key(f"{namespace}_{f.__name__}", *args, **kwargs)

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Cache hit: {cache_key}")
                return result

            result = f(self, *args, **kwargs)
            if result is not None:
                timeout = current_app.config.get(timeout_setting, 300)
                cache.set(cache_key, result, timeout=timeout)
                current_app.logger.debug(f"Cache set: {cache_key} ({timeout}s)")

            return result

        wrapped.cache_key = lambda *args, **kwargs: make_cache_key(
            f"{namespace}_{f.__name__}", *args, **kwargs
        )
        return wrapped

    return decorator


def invalidate(key):
    """
    Drop a single cache entry

    Args:
        key: Full cache key, as returned by a decorated method's cache_key()
    """
    deleted = cache.delete(key)
    current_app.logger.info(f"Cache invalidated: {key}")
    return deleted


def get_cache_stats():
    """Basic cache settings, Redis would provide better stats"""
    return {
        "type": current_app.config.get("CACHE_TYPE", "Unknown"),
        "timeout": current_app.config.get("CACHE_DEFAULT_TIMEOUT", 300),
    }
