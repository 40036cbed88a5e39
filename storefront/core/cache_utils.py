"""
Caching utilities for the public storefront reads
Uses the configured Django cache (Redis in production, local memory otherwise)

Keys are namespaced by a generation counter so a whole namespace can be
invalidated with a single increment, whatever the cache backend.
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
CATEGORIES_CACHE_TTL = 600  # 10 minutes
VEHICLE_TREE_CACHE_TTL = 3600  # 1 hour

# Namespaces
PRODUCTS_LIST_NAMESPACE = 'products_list'
CATEGORIES_NAMESPACE = 'categories_list'
VEHICLE_TREE_NAMESPACE = 'vehicle_tree'


def _generation_key(prefix):
    return f"{prefix}:generation"


def get_generation(prefix):
    """Current generation of a cache namespace"""
    generation = cache.get(_generation_key(prefix))
    if generation is None:
        generation = 1
        cache.set(_generation_key(prefix), generation, None)
    return generation


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{get_generation(prefix)}:{key_hash}"


def invalidate_namespace(prefix):
    """Invalidate every key of a namespace by bumping its generation"""
    try:
        cache.incr(_generation_key(prefix))
    except ValueError:
        # Generation key missing or evicted
        cache.set(_generation_key(prefix), 2, None)
    logger.info(f"Invalidated cache namespace: {prefix}")


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=600, key_prefix="categories_list")
        def get_expensive_data(include_inactive):
            # expensive query here
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def get_cached_products_list(filters_dict):
    """
    Get cached products list with filters
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key(PRODUCTS_LIST_NAMESPACE, **filters_dict)
    return cache.get(cache_key), cache_key


def cache_products_list(cache_key, data, ttl=PRODUCTS_LIST_CACHE_TTL):
    """Cache products list data"""
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached products list: {cache_key}")


def invalidate_products_cache():
    """Invalidate all products-related cache"""
    invalidate_namespace(PRODUCTS_LIST_NAMESPACE)


def invalidate_categories_cache():
    invalidate_namespace(CATEGORIES_NAMESPACE)


def invalidate_vehicle_tree_cache():
    invalidate_namespace(VEHICLE_TREE_NAMESPACE)
