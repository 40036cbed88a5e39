"""
Checkout flow: price a cart from the catalog, start a Stripe Checkout Session
and turn completed sessions into orders.
"""
import logging
from decimal import Decimal

from django.db import transaction

from storefront.catalog.models import Product
from storefront.core.utils import create_audit_log
from storefront.notifications.emails import EmailDeliveryError, send_order_confirmation
from storefront.pricing.discounts import to_money
from storefront.pricing.promo import validate_promo_code, redeem_promo_code
from . import stripe_gateway
from .models import CheckoutSession, Order, OrderItem, ShippingCost

logger = logging.getLogger(__name__)


class CheckoutError(Exception):
    """The cart or customer details cannot be checked out"""


def price_cart(items):
    """
    Price cart lines from the catalog.

    `items` is a list of {product, quantity}. Returns (lines, subtotal) where
    each line is {product_id, title, sku, quantity, unit_price}.
    """
    if not items:
        raise CheckoutError('No items in cart')

    lines = []
    subtotal = Decimal('0.00')
    for item in items:
        product_id = item.get('product') or item.get('product_id')
        try:
            quantity = int(item.get('quantity', 1))
        except (TypeError, ValueError):
            raise CheckoutError('Invalid quantity')
        if quantity < 1:
            raise CheckoutError('Quantity must be at least 1')

        product = Product.objects.select_related('applied_discount').filter(pk=product_id, status='active').first() if product_id else None
        if product is None:
            raise CheckoutError(f'Product {product_id} is not available')

        unit_price = to_money(product.effective_price)
        lines.append({
            'product_id': product.id,
            'title': product.title,
            'sku': product.sku or '',
            'quantity': quantity,
            'unit_price': str(unit_price),
        })
        subtotal += unit_price * quantity
    return lines, to_money(subtotal)


def quote_checkout(items, email, promo_code=None):
    """Return the priced lines and totals for a cart"""
    lines, subtotal = price_cart(items)

    promo_discount = Decimal('0.00')
    code = ''
    if promo_code:
        promo, promo_discount = validate_promo_code(promo_code, email, subtotal)
        code = promo.code

    shipping_cost = to_money(ShippingCost.current())
    total = to_money(subtotal - promo_discount + shipping_cost)
    return {
        'items': lines,
        'subtotal': subtotal,
        'promo_code': code,
        'promo_discount': promo_discount,
        'shipping_cost': shipping_cost,
        'total': total,
    }


def start_checkout(items, customer, promo_code, origin):
    """
    Snapshot the checkout and create its Stripe Checkout Session.

    Raises CheckoutError, PromoCodeError or PaymentGatewayError. Nothing is
    stored when Stripe rejects the session.
    """
    if not stripe_gateway.is_configured():
        raise stripe_gateway.PaymentGatewayNotConfigured('Stripe not configured')

    quote = quote_checkout(items, customer['email'], promo_code)
    origin = origin.rstrip('/')

    with transaction.atomic():
        checkout = CheckoutSession.objects.create(
            customer_name=customer['name'],
            customer_email=customer['email'],
            customer_phone=customer.get('phone') or '',
            address=customer.get('address') or {},
            **quote
        )
        session = stripe_gateway.create_checkout_session(
            checkout,
            success_url=f"{origin}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{origin}/checkout",
        )
        checkout.stripe_session_id = session.id
        checkout.save(update_fields=['stripe_session_id', 'updated_at'])
    return checkout, session


def materialize_order(session_id, payment_intent_id=''):
    """
    Create the Order for a completed Stripe Checkout Session.

    Idempotent on the Stripe session id. Returns (order, created), or
    (None, False) when no checkout snapshot exists for the session.
    """
    existing = Order.objects.filter(stripe_session_id=session_id).first()
    if existing:
        logger.info(f"Order {existing.order_number} already exists for session {session_id}")
        return existing, False

    with transaction.atomic():
        checkout = CheckoutSession.objects.select_for_update().filter(stripe_session_id=session_id).first()
        if checkout is None:
            logger.error(f"No checkout snapshot for completed Stripe session {session_id}")
            return None, False

        # Re-check under the row lock in case of a concurrent delivery
        existing = Order.objects.filter(stripe_session_id=session_id).first()
        if existing:
            return existing, False

        address = checkout.address or {}
        order = Order.objects.create(
            stripe_session_id=session_id,
            stripe_payment_intent_id=payment_intent_id or '',
            customer_name=checkout.customer_name,
            customer_email=checkout.customer_email,
            customer_phone=checkout.customer_phone,
            address_street=address.get('street', ''),
            address_city=address.get('city', ''),
            address_state=address.get('state', ''),
            address_zip=address.get('zip', ''),
            address_country=address.get('country', ''),
            subtotal=checkout.subtotal,
            promo_code=checkout.promo_code,
            promo_discount=checkout.promo_discount,
            shipping_cost=checkout.shipping_cost,
            total=checkout.total,
            order_status='new',
            payment_status='completed',
            shipping_status='pending',
        )
        product_ids = {line['product_id'] for line in checkout.items}
        existing_products = set(Product.objects.filter(pk__in=product_ids).values_list('id', flat=True))
        for line in checkout.items:
            OrderItem.objects.create(
                order=order,
                product_id=line['product_id'] if line['product_id'] in existing_products else None,
                title=line['title'],
                sku=line.get('sku', ''),
                quantity=int(line['quantity']),
                unit_price=Decimal(line['unit_price']),
            )

        checkout.status = 'completed'
        checkout.save(update_fields=['status', 'updated_at'])

        if checkout.promo_code:
            redeem_promo_code(checkout.promo_code)

    create_audit_log(
        action='order_create',
        model_name='Order',
        object_id=str(order.id),
        object_name=order.order_number,
        object_reference=session_id,
        changes={'total': str(order.total), 'items': len(checkout.items), 'promo_code': order.promo_code}
    )
    logger.info(f"Created order {order.order_number} from Stripe session {session_id}")

    try:
        send_order_confirmation(order)
    except EmailDeliveryError as e:
        logger.error(f"Order {order.order_number} created but confirmation email failed: {e}")

    return order, True


def mark_checkout_expired(session_id):
    updated = CheckoutSession.objects.filter(stripe_session_id=session_id, status='open').update(status='expired')
    if updated:
        logger.info(f"Checkout session {session_id} expired")
    return bool(updated)


def mark_payment_failed(payment_intent_id):
    """Flag the order paid through this payment intent as failed. Returns the number of orders updated"""
    if not payment_intent_id:
        return 0
    updated = Order.objects.filter(stripe_payment_intent_id=payment_intent_id).update(payment_status='failed')
    if updated:
        logger.warning(f"Payment failed for payment intent {payment_intent_id}")
    else:
        logger.info(f"Payment failed for payment intent {payment_intent_id} with no matching order")
    return updated
