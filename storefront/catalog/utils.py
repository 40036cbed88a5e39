"""
Utility functions for catalog operations
"""
from .models import Product


def next_available_sku():
    """Return the first unused number in the sequence of numeric SKUs, starting at 1"""
    used = set()
    for sku in Product.objects.exclude(sku__isnull=True).exclude(sku='').values_list('sku', flat=True):
        sku = sku.strip()
        if sku.isdigit():
            used.add(int(sku))

    candidate = 1
    while candidate in used:
        candidate += 1
    return str(candidate)


def is_sku_available(sku, exclude_product_id=None):
    queryset = Product.objects.filter(sku__iexact=sku.strip())
    if exclude_product_id:
        queryset = queryset.exclude(pk=exclude_product_id)
    return not queryset.exists()
