"""
Cache invalidation signals
Automatically invalidate cache when catalog data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import (
    invalidate_products_cache, invalidate_categories_cache, invalidate_vehicle_tree_cache,
)

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

PRODUCT_MODELS = {'Product', 'VehicleCompatibility', 'Discount'}
CATEGORY_MODELS = {'Category'}
VEHICLE_MODELS = {'VehicleMake', 'VehicleModel', 'VehicleYearRange'}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    previous = is_suspended()
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = previous


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_storefront_cache(sender, instance, **kwargs):
    """Invalidate the public caches when the models they are built from change"""
    if is_suspended():
        return

    model_name = sender.__name__
    try:
        if model_name in PRODUCT_MODELS:
            invalidate_products_cache()
        elif model_name in CATEGORY_MODELS:
            invalidate_categories_cache()
            # Product payloads embed the category
            invalidate_products_cache()
        elif model_name in VEHICLE_MODELS:
            invalidate_vehicle_tree_cache()
    except Exception as e:
        logger.warning(f"Error in invalidate_storefront_cache signal for {model_name}: {e}")
