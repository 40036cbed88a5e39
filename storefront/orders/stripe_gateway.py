"""
Stripe Checkout integration.
Creates Checkout Sessions for a priced cart and verifies webhook events.
"""
import json
import logging
import os
from decimal import Decimal, ROUND_HALF_UP

import stripe
from django.conf import settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Stripe rejected a request or could not be reached"""


class PaymentGatewayNotConfigured(PaymentGatewayError):
    """No Stripe secret key is configured"""


class WebhookVerificationError(PaymentGatewayError):
    """The webhook payload or its signature is invalid"""


def _config(name, default=''):
    return getattr(settings, name, None) or os.getenv(name, default)


def get_secret_key():
    return _config('STRIPE_SECRET_KEY')


def get_webhook_secret():
    return _config('STRIPE_WEBHOOK_SECRET')


def get_currency():
    return (_config('STRIPE_CURRENCY', 'usd') or 'usd').lower()


def get_allowed_countries():
    countries = getattr(settings, 'STRIPE_ALLOWED_COUNTRIES', None)
    if not countries:
        countries = [c.strip() for c in os.getenv('STRIPE_ALLOWED_COUNTRIES', 'US').split(',') if c.strip()]
    return list(countries)


def is_configured():
    return bool(get_secret_key())


def to_cents(amount):
    """Convert a Decimal money amount to integer cents"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _require_key():
    api_key = get_secret_key()
    if not api_key:
        raise PaymentGatewayNotConfigured('Stripe not configured')
    return api_key


def create_checkout_session(checkout, success_url, cancel_url):
    """
    Create a Stripe Checkout Session for a stored CheckoutSession snapshot.

    Line items carry the catalog unit prices. The promo discount becomes a
    one-off amount_off coupon and shipping a fixed-amount shipping option.
    Returns the Stripe session (has `id` and `url`).
    """
    api_key = _require_key()
    currency = get_currency()

    line_items = [
        {
            'price_data': {
                'currency': currency,
                'product_data': {'name': item['title']},
                'unit_amount': to_cents(item['unit_price']),
            },
            'quantity': int(item['quantity']),
        }
        for item in checkout.items
    ]

    shipping_cents = to_cents(checkout.shipping_cost)
    params = {
        'mode': 'payment',
        'payment_method_types': ['card'],
        'line_items': line_items,
        'customer_email': checkout.customer_email,
        'metadata': {'checkout_id': str(checkout.id)},
        'shipping_address_collection': {'allowed_countries': get_allowed_countries()},
        'phone_number_collection': {'enabled': True},
        'shipping_options': [{
            'shipping_rate_data': {
                'type': 'fixed_amount',
                'fixed_amount': {'amount': shipping_cents, 'currency': currency},
                'display_name': 'Shipping' if shipping_cents else 'Free shipping',
            },
        }],
        'success_url': success_url,
        'cancel_url': cancel_url,
    }

    try:
        if checkout.promo_discount and checkout.promo_discount > 0:
            coupon = stripe.Coupon.create(
                amount_off=to_cents(checkout.promo_discount),
                currency=currency,
                duration='once',
                name=f"Promo {checkout.promo_code}"[:40],
                api_key=api_key,
            )
            params['discounts'] = [{'coupon': coupon.id}]

        session = stripe.checkout.Session.create(api_key=api_key, **params)
    except stripe.StripeError as e:
        logger.error(f"Stripe checkout session creation failed for checkout {checkout.id}: {e}")
        raise PaymentGatewayError(str(e)) from e

    logger.info(f"Created Stripe checkout session {session.id} for checkout {checkout.id}")
    return session


def retrieve_checkout_session(session_id):
    api_key = _require_key()
    try:
        return stripe.checkout.Session.retrieve(session_id, api_key=api_key)
    except stripe.StripeError as e:
        logger.warning(f"Could not retrieve Stripe session {session_id}: {e}")
        raise PaymentGatewayError(str(e)) from e


def verify_webhook_event(payload, signature):
    """
    Verify a webhook payload against its Stripe-Signature header.

    Returns the event as a plain dict.
    """
    secret = get_webhook_secret()
    if not secret:
        raise PaymentGatewayNotConfigured('Stripe webhook secret not configured')
    if not signature:
        raise WebhookVerificationError('Missing Stripe-Signature header')

    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except ValueError as e:
        raise WebhookVerificationError(f'Invalid payload: {e}') from e
    except stripe.SignatureVerificationError as e:
        raise WebhookVerificationError(f'Invalid signature: {e}') from e

    if isinstance(payload, bytes):
        payload = payload.decode('utf-8')
    return json.loads(payload)
