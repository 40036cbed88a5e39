"""
Discount engine: resolves the products a discount applies to and writes the
discounted prices onto them.

A product's base `price` is never overwritten. Applying a discount records
`regular_price` (the base price at that moment), `sale_price`, the applied
discount and the amount taken off. Prices are always computed from the base
price, so applying the same discount twice gives the same result. The last
discount applied to a product wins.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from storefront.catalog.models import Product, VehicleCompatibility
from storefront.core.cache_signals import suspend_cache_signals
from storefront.core.cache_utils import invalidate_products_cache
from .models import Discount

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')

DISCOUNT_FIELDS = [
    'sale_price', 'regular_price', 'applied_discount', 'discount_amount', 'discount_applied_at', 'updated_at',
]


class DiscountError(Exception):
    """Base error for discounts that cannot be applied"""


class DiscountNotActive(DiscountError):
    pass


class DiscountNotStarted(DiscountError):
    pass


class DiscountExpired(DiscountError):
    pass


class DiscountLimitReached(DiscountError):
    pass


class NoApplicableProducts(DiscountError):
    pass


@dataclass
class ProductPriceChange:
    product: Product
    original_price: Decimal
    discounted_price: Decimal
    discount_amount: Decimal

    def as_dict(self):
        return {
            'product_id': self.product.id,
            'title': self.product.title,
            'sku': self.product.sku,
            'original_price': str(self.original_price),
            'discounted_price': str(self.discounted_price),
            'discount_amount': str(self.discount_amount),
        }


def to_money(value):
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_discounted_price(price, discount_type, value):
    """
    Return (discounted_price, discount_amount) for a base price.

    percentage: price - price * value / 100
    fixed: max(0, price - value)
    """
    price = Decimal(str(price))
    value = Decimal(str(value))
    if discount_type == 'percentage':
        discounted = price - (price * value / Decimal('100'))
    elif discount_type == 'fixed':
        discounted = max(Decimal('0'), price - value)
    else:
        raise DiscountError(f'Unknown discount type "{discount_type}"')

    discounted = max(ZERO, to_money(discounted))
    return discounted, to_money(price - discounted)


def vehicle_filter_query(vehicle):
    """Q over VehicleCompatibility rows matched by one discount vehicle filter"""
    query = Q(make__icontains=vehicle.make.strip())
    if vehicle.model:
        # A compatibility without a model fits every model of the make
        query &= Q(model='') | Q(model__icontains=vehicle.model.strip())
    if vehicle.year_start is not None or vehicle.year_end is not None:
        start = vehicle.year_start if vehicle.year_start is not None else vehicle.year_end
        end = vehicle.year_end if vehicle.year_end is not None else vehicle.year_start
        # Ranges overlap; an open compatibility bound matches any year
        query &= (Q(year_start__isnull=True) | Q(year_start__lte=end))
        query &= (Q(year_end__isnull=True) | Q(year_end__gte=start))
    return query


def resolve_applicable_products(discount):
    """
    Products the discount applies to: the union of its category selection
    (including subcategories), its vehicle filters, its explicit product list
    and, with the "all products" flag, every active product.
    """
    query = Q(pk__in=discount.applicable_products.values('pk'))

    category_ids = set()
    for category in discount.applicable_categories.all():
        category_ids.update(category.descendant_ids())
    if category_ids:
        query |= Q(category_id__in=category_ids)

    vehicle_query = None
    for vehicle in discount.vehicles.all():
        if not vehicle.make or not vehicle.make.strip():
            continue
        match = vehicle_filter_query(vehicle)
        vehicle_query = match if vehicle_query is None else vehicle_query | match
    if vehicle_query is not None:
        query |= Q(pk__in=VehicleCompatibility.objects.filter(vehicle_query).values('product_id'))

    if discount.apply_to_all:
        query |= Q(status='active')

    return Product.objects.filter(query).distinct().order_by('id')


def check_discount_applicable(discount, now=None, check_limit=True):
    """Raise when the discount may not be applied at `now`"""
    now = now or timezone.now()
    if not discount.active:
        raise DiscountNotActive('Discount is not active')
    if discount.has_start_date and discount.start_date and discount.start_date > now:
        raise DiscountNotStarted('Discount has not started yet')
    if discount.has_end_date and discount.end_date and discount.end_date < now:
        raise DiscountExpired('Discount has expired')
    # A limit of 0 means unlimited
    if check_limit and discount.usage_limit and discount.used_count >= discount.usage_limit:
        raise DiscountLimitReached('Discount usage limit reached')


def _price_changes(discount, products):
    changes = []
    for product in products:
        if product.price is None or product.price <= 0:
            logger.debug(f"Skipping product {product.id} with non-positive price for discount {discount.id}")
            continue
        discounted, amount = compute_discounted_price(product.price, discount.type, discount.value)
        changes.append(ProductPriceChange(
            product=product,
            original_price=to_money(product.price),
            discounted_price=discounted,
            discount_amount=amount,
        ))
    return changes


def preview_discount(discount):
    """Price changes the discount would make, without writing anything"""
    return _price_changes(discount, resolve_applicable_products(discount))


def _clear_discount_fields(product):
    product.sale_price = None
    product.regular_price = None
    product.applied_discount = None
    product.discount_amount = None
    product.discount_applied_at = None


def apply_discount(discount, now=None, count_use=True):
    """
    Apply the discount to every applicable product in one transaction.

    `count_use=False` re-prices without counting a use or checking the usage
    limit, for discounts being re-applied after an edit.
    Returns the list of ProductPriceChange written.
    """
    now = now or timezone.now()
    check_discount_applicable(discount, now, check_limit=count_use)

    product_ids = list(resolve_applicable_products(discount).values_list('id', flat=True))
    if not product_ids:
        raise NoApplicableProducts('No products found for this discount')

    with transaction.atomic(), suspend_cache_signals():
        products = Product.objects.select_for_update().filter(pk__in=product_ids).order_by('id')
        changes = _price_changes(discount, products)
        for change in changes:
            product = change.product
            product.regular_price = change.original_price
            product.sale_price = change.discounted_price
            product.applied_discount = discount
            product.discount_amount = change.discount_amount
            product.discount_applied_at = now
            product.save(update_fields=DISCOUNT_FIELDS)

        if changes and count_use:
            Discount.objects.filter(pk=discount.pk).update(used_count=F('used_count') + 1)

    discount.refresh_from_db(fields=['used_count'])
    if changes:
        invalidate_products_cache()
    logger.info(f"Applied discount {discount.id} ({discount.name}) to {len(changes)} products")
    return changes


def remove_discount(discount):
    """
    Clear the discount from every product currently carrying it. The base
    price is left as it is. Returns the count restored.
    """
    with transaction.atomic(), suspend_cache_signals():
        products = list(Product.objects.select_for_update().filter(applied_discount=discount))
        for product in products:
            _clear_discount_fields(product)
            product.save(update_fields=DISCOUNT_FIELDS)

    if products:
        invalidate_products_cache()
    logger.info(f"Removed discount {discount.id} ({discount.name}) from {len(products)} products")
    return len(products)


def reprice_product(product):
    """
    Recompute the sale price of a discounted product from its current base
    price, after the base price was edited. A product whose price dropped to
    zero or below loses the discount.
    """
    discount = product.applied_discount
    if discount is None:
        return None

    if product.price is None or product.price <= 0:
        _clear_discount_fields(product)
        change = None
    else:
        discounted, amount = compute_discounted_price(product.price, discount.type, discount.value)
        product.regular_price = to_money(product.price)
        product.sale_price = discounted
        product.discount_amount = amount
        change = ProductPriceChange(
            product=product,
            original_price=product.regular_price,
            discounted_price=discounted,
            discount_amount=amount,
        )
    product.save(update_fields=DISCOUNT_FIELDS)
    logger.info(f"Repriced product {product.id} under discount {discount.id} at base price {product.price}")
    return change


@transaction.atomic
def set_discount_active(discount, active, now=None):
    """
    Activate or deactivate a discount. Returns the number of products changed.

    Activating applies the discount when it is within its dates and its usage
    limit. Otherwise it is only flagged active. Deactivating restores the
    prices.
    """
    if active:
        discount.active = True
        discount.save(update_fields=['active', 'updated_at'])
        try:
            check_discount_applicable(discount, now)
        except (DiscountNotStarted, DiscountExpired, DiscountLimitReached):
            return 0
        return len(apply_discount(discount, now))

    restored = remove_discount(discount)
    discount.active = False
    discount.save(update_fields=['active', 'updated_at'])
    return restored


def expire_discounts(now=None, dry_run=False):
    """Deactivate active discounts whose end date has passed and restore their products"""
    now = now or timezone.now()
    expired = list(Discount.objects.filter(active=True, has_end_date=True, end_date__lt=now))
    if dry_run:
        return expired
    for discount in expired:
        set_discount_active(discount, False, now)
        logger.info(f"Expired discount {discount.id} ({discount.name})")
    return expired
