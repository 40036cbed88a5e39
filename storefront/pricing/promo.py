"""
Promo code validation and redemption for checkout
"""
import logging
from decimal import Decimal

from django.db.models import F
from django.utils import timezone

from .discounts import to_money
from .models import PromoCode

logger = logging.getLogger(__name__)


class PromoCodeError(Exception):
    """A promo code that cannot be used. The message is safe to show to customers"""


def validate_promo_code(code, email, subtotal, now=None):
    """
    Check that a promo code can be used by `email` on an order of `subtotal`.

    Returns (promo_code, discount_amount). The amount is capped at the subtotal.
    """
    now = now or timezone.now()
    code = (code or '').strip().upper()
    email = (email or '').strip().lower()
    subtotal = to_money(subtotal or 0)

    if not code:
        raise PromoCodeError('Promo code is required')

    promo = PromoCode.objects.filter(code=code).first()
    if promo is None or not promo.active:
        raise PromoCodeError('Invalid promo code')
    if promo.expires_at and promo.expires_at < now:
        raise PromoCodeError('This promo code has expired')
    if promo.usage_limit is not None and promo.used_count >= promo.usage_limit:
        raise PromoCodeError('This promo code has reached its usage limit')
    if promo.allowed_email and promo.allowed_email != email:
        raise PromoCodeError('This promo code is not valid for your email address')

    if email:
        from storefront.orders.models import Order
        already_used = Order.objects.filter(
            customer_email__iexact=email,
            promo_code=code,
            payment_status='completed',
        ).exists()
        if already_used:
            raise PromoCodeError('You have already used this promo code')

    if promo.type == 'percent':
        amount = to_money(subtotal * promo.value / Decimal('100'))
    else:
        amount = to_money(promo.value)
    return promo, min(amount, subtotal)


def redeem_promo_code(code):
    """Count one use of a promo code. Returns False when the code does not exist"""
    code = (code or '').strip().upper()
    if not code:
        return False
    updated = PromoCode.objects.filter(code=code).update(used_count=F('used_count') + 1)
    if updated:
        logger.info(f"Redeemed promo code {code}")
    return bool(updated)
