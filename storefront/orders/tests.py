"""
Comprehensive test suite for Orders module
Tests: shipping cost, cart pricing, Stripe checkout session creation, webhook
handling, order materialization and the order admin endpoints
"""
import json
from unittest.mock import patch, MagicMock

import stripe
from django.core import mail
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient
from decimal import Decimal
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.models import AuditLog
from storefront.orders.models import ShippingCost, CheckoutSession, Order, InvalidStatusTransition
from storefront.orders.checkout import CheckoutError, price_cart, quote_checkout, materialize_order
from storefront.orders import stripe_gateway
from storefront.pricing.discounts import apply_discount
from storefront.pricing.models import PromoCode
from storefront.notifications.emails import EmailDeliveryError

STRIPE_SETTINGS = {
    'STRIPE_SECRET_KEY': 'sk_test_123',
    'STRIPE_WEBHOOK_SECRET': 'whsec_test_123',
    'STRIPE_CURRENCY': 'usd',
    'STRIPE_ALLOWED_COUNTRIES': ['US', 'CA'],
    'EMAIL_BACKEND': 'django.core.mail.backends.locmem.EmailBackend',
    'OWNER_EMAIL': 'owner@shop.test',
}

CUSTOMER = {
    'name': 'Jane Buyer',
    'email': 'jane@test.com',
    'phone': '5551234567',
    'address': {'street': '1 Main St', 'city': 'Austin', 'state': 'TX', 'zip': '78701', 'country': 'US'},
}


class OrderModelTests(TestCase):
    def test_order_number_format(self):
        order = TestDataFactory.create_order()
        self.assertRegex(order.order_number, r'^ORD-\d{8}-[0-9A-F]{8}$')
        self.assertEqual(str(order), order.order_number)

    def test_line_total(self):
        product = TestDataFactory.create_product(price='12.50')
        order = TestDataFactory.create_order(products=[product], quantity=3)
        item = order.items.get()
        self.assertEqual(item.line_total, Decimal('37.50'))
        self.assertEqual(order.subtotal, Decimal('37.50'))

    def test_shipping_address(self):
        order = TestDataFactory.create_order()
        self.assertEqual(order.shipping_address, '1 Main St, Austin, TX 78701, US')

    def test_status_workflow(self):
        order = TestDataFactory.create_order()
        self.assertEqual(order.allowed_transitions(), ['processing', 'cancelled'])
        self.assertTrue(order.transition_to('processing'))
        self.assertFalse(order.transition_to('processing'))
        self.assertTrue(order.transition_to('shipped'))
        self.assertEqual(order.shipping_status, 'shipped')
        self.assertTrue(order.transition_to('delivered'))
        self.assertEqual(order.shipping_status, 'delivered')

        with self.assertRaises(InvalidStatusTransition) as ctx:
            order.transition_to('cancelled')
        self.assertEqual(ctx.exception.allowed, [])

    def test_cannot_skip_states(self):
        order = TestDataFactory.create_order()
        with self.assertRaises(InvalidStatusTransition):
            order.transition_to('delivered')
        with self.assertRaises(InvalidStatusTransition):
            order.transition_to('bogus')

    def test_current_shipping_cost(self):
        self.assertEqual(ShippingCost.current(), Decimal('0.00'))
        TestDataFactory.create_shipping_cost('4.99')
        TestDataFactory.create_shipping_cost('6.50')
        self.assertEqual(ShippingCost.current(), Decimal('6.50'))


class ShippingCostEndpointTests(TestCase):
    def test_public_quote(self):
        TestDataFactory.create_shipping_cost('7.25')
        response = APIClient().post('/api/v1/shipping-cost/', {'subtotal': '40.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'shipping_cost': '7.25', 'subtotal': '40.00', 'total': '47.25'})

    def test_admin_sets_cost(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = client.post('/api/v1/shipping-costs/', {'cost': '9.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ShippingCost.current(), Decimal('9.00'))

        response = client.post('/api/v1/shipping-costs/', {'cost': '-1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_anonymous_cannot_set_cost(self):
        response = APIClient().post('/api/v1/shipping-costs/', {'cost': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CartPricingTests(TestCase):
    def setUp(self):
        self.product = TestDataFactory.create_product(title='Smart Key', sku='K-1', price='50.00')

    def test_prices_come_from_catalog(self):
        lines, subtotal = price_cart([{'product': self.product.id, 'quantity': 2, 'price': '0.01'}])
        self.assertEqual(subtotal, Decimal('100.00'))
        self.assertEqual(lines, [{
            'product_id': self.product.id, 'title': 'Smart Key', 'sku': 'K-1', 'quantity': 2, 'unit_price': '50.00',
        }])

    def test_sale_price_is_charged(self):
        discount = TestDataFactory.create_discount(type='percentage', value='20', products=[self.product])
        apply_discount(discount)
        _, subtotal = price_cart([{'product': self.product.id, 'quantity': 1}])
        self.assertEqual(subtotal, Decimal('40.00'))

    def test_rejections(self):
        draft = TestDataFactory.create_product(status='draft')
        with self.assertRaisesMessage(CheckoutError, 'No items in cart'):
            price_cart([])
        with self.assertRaises(CheckoutError):
            price_cart([{'product': self.product.id, 'quantity': 0}])
        with self.assertRaises(CheckoutError):
            price_cart([{'product': self.product.id, 'quantity': 'many'}])
        with self.assertRaises(CheckoutError):
            price_cart([{'product': draft.id, 'quantity': 1}])
        with self.assertRaises(CheckoutError):
            price_cart([{'product': 999999, 'quantity': 1}])

    def test_quote_with_promo_and_shipping(self):
        TestDataFactory.create_shipping_cost('5.00')
        TestDataFactory.create_promo_code(code='SAVE10', type='percent', value='10')
        quote = quote_checkout([{'product': self.product.id, 'quantity': 2}], 'jane@test.com', 'save10')
        self.assertEqual(quote['subtotal'], Decimal('100.00'))
        self.assertEqual(quote['promo_code'], 'SAVE10')
        self.assertEqual(quote['promo_discount'], Decimal('10.00'))
        self.assertEqual(quote['shipping_cost'], Decimal('5.00'))
        self.assertEqual(quote['total'], Decimal('95.00'))


class StripeGatewayTests(TestCase):
    def test_to_cents(self):
        self.assertEqual(stripe_gateway.to_cents(Decimal('19.99')), 1999)
        self.assertEqual(stripe_gateway.to_cents('0.005'), 1)
        self.assertEqual(stripe_gateway.to_cents(Decimal('0')), 0)

    @override_settings(STRIPE_SECRET_KEY='')
    @patch.dict('os.environ', {'STRIPE_SECRET_KEY': ''})
    def test_not_configured(self):
        self.assertFalse(stripe_gateway.is_configured())
        with self.assertRaises(stripe_gateway.PaymentGatewayNotConfigured):
            stripe_gateway.retrieve_checkout_session('cs_1')

    @override_settings(STRIPE_WEBHOOK_SECRET='whsec_test_123')
    @patch('stripe.Webhook.construct_event')
    def test_verify_returns_plain_dict(self, construct_event):
        payload = json.dumps({'id': 'evt_1', 'type': 'checkout.session.expired'}).encode()
        event = stripe_gateway.verify_webhook_event(payload, 't=1,v1=sig')
        construct_event.assert_called_once_with(payload, 't=1,v1=sig', 'whsec_test_123')
        self.assertEqual(event['type'], 'checkout.session.expired')

    @override_settings(STRIPE_WEBHOOK_SECRET='whsec_test_123')
    def test_verify_requires_signature(self):
        with self.assertRaises(stripe_gateway.WebhookVerificationError):
            stripe_gateway.verify_webhook_event(b'{}', '')


@override_settings(**STRIPE_SETTINGS)
class CheckoutSessionEndpointTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.product = TestDataFactory.create_product(title='Smart Key', price='50.00')
        TestDataFactory.create_shipping_cost('5.00')

    def _post(self, payload, **extra):
        return self.client.post('/api/v1/checkout/session/', payload, format='json', **extra)

    @patch('stripe.Coupon.create')
    @patch('stripe.checkout.Session.create')
    def test_creates_session_with_catalog_prices(self, session_create, coupon_create):
        session_create.return_value = MagicMock(id='cs_test_abc', url='https://checkout.stripe.test/cs_test_abc')
        coupon_create.return_value = MagicMock(id='coupon_1')
        TestDataFactory.create_promo_code(code='SAVE10', type='percent', value='10')

        response = self._post({
            'items': [{'product': self.product.id, 'quantity': 2}],
            'customer': CUSTOMER,
            'promo_code': 'save10',
        }, HTTP_ORIGIN='https://shop.test')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['session_id'], 'cs_test_abc')
        self.assertEqual(response.data['url'], 'https://checkout.stripe.test/cs_test_abc')
        self.assertEqual(response.data['total'], '95.00')

        kwargs = session_create.call_args.kwargs
        self.assertEqual(kwargs['api_key'], 'sk_test_123')
        self.assertEqual(kwargs['line_items'][0]['price_data']['unit_amount'], 5000)
        self.assertEqual(kwargs['line_items'][0]['quantity'], 2)
        self.assertEqual(kwargs['discounts'], [{'coupon': 'coupon_1'}])
        self.assertEqual(kwargs['shipping_options'][0]['shipping_rate_data']['fixed_amount']['amount'], 500)
        self.assertEqual(kwargs['shipping_address_collection'], {'allowed_countries': ['US', 'CA']})
        self.assertEqual(kwargs['success_url'], 'https://shop.test/checkout/success?session_id={CHECKOUT_SESSION_ID}')
        self.assertEqual(coupon_create.call_args.kwargs['amount_off'], 1000)

        checkout = CheckoutSession.objects.get(stripe_session_id='cs_test_abc')
        self.assertEqual(checkout.status, 'open')
        self.assertEqual(checkout.total, Decimal('95.00'))
        self.assertEqual(checkout.address['city'], 'Austin')

    @patch('stripe.checkout.Session.create')
    def test_empty_cart(self, session_create):
        response = self._post({'items': [], 'customer': CUSTOMER})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No items in cart')
        session_create.assert_not_called()

    @patch('stripe.checkout.Session.create')
    def test_invalid_promo_code(self, session_create):
        response = self._post({
            'items': [{'product': self.product.id, 'quantity': 1}], 'customer': CUSTOMER, 'promo_code': 'NOPE',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid promo code')
        session_create.assert_not_called()

    @patch('stripe.checkout.Session.create')
    def test_unavailable_product(self, session_create):
        response = self._post({'items': [{'product': 999999, 'quantity': 1}], 'customer': CUSTOMER})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('stripe.checkout.Session.create')
    def test_stripe_failure_stores_nothing(self, session_create):
        session_create.side_effect = stripe.StripeError('card network down')
        response = self._post({'items': [{'product': self.product.id, 'quantity': 1}], 'customer': CUSTOMER})
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertFalse(CheckoutSession.objects.exists())

    @override_settings(STRIPE_SECRET_KEY='')
    @patch.dict('os.environ', {'STRIPE_SECRET_KEY': ''})
    def test_not_configured(self):
        response = self._post({'items': [{'product': self.product.id, 'quantity': 1}], 'customer': CUSTOMER})
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Stripe not configured')


@override_settings(**STRIPE_SETTINGS)
class MaterializeOrderTests(TestCase):
    def setUp(self):
        self.product = TestDataFactory.create_product(title='Smart Key', price='50.00')
        TestDataFactory.create_promo_code(code='SAVE10')
        self.checkout = TestDataFactory.create_checkout_session(
            [self.product], stripe_session_id='cs_test_1', quantity=2,
            promo_code='SAVE10', promo_discount='10.00', shipping_cost='5.00'
        )

    def test_creates_order_from_snapshot(self):
        order, created = materialize_order('cs_test_1', 'pi_1')
        self.assertTrue(created)
        self.assertEqual(order.total, Decimal('95.00'))
        self.assertEqual(order.payment_status, 'completed')
        self.assertEqual(order.order_status, 'new')
        self.assertEqual(order.stripe_payment_intent_id, 'pi_1')
        self.assertEqual(order.address_city, 'Austin')
        item = order.items.get()
        self.assertEqual(item.product, self.product)
        self.assertEqual(item.line_total, Decimal('100.00'))

        self.checkout.refresh_from_db()
        self.assertEqual(self.checkout.status, 'completed')
        self.assertEqual(PromoCode.objects.get(code='SAVE10').used_count, 1)
        self.assertTrue(AuditLog.objects.filter(action='order_create', object_reference='cs_test_1').exists())

        order.refresh_from_db()
        self.assertTrue(order.confirmation_email_sent)
        self.assertEqual(len(mail.outbox), 2)
        self.assertEqual(mail.outbox[0].subject, 'New Order Received')
        self.assertEqual(mail.outbox[0].to, ['owner@shop.test'])
        self.assertEqual(mail.outbox[1].to, ['jane@test.com'])
        self.assertIn(order.order_number, mail.outbox[1].body)

    def test_is_idempotent(self):
        first, created = materialize_order('cs_test_1', 'pi_1')
        second, created_again = materialize_order('cs_test_1', 'pi_1')
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Order.objects.count(), 1)
        self.assertEqual(PromoCode.objects.get(code='SAVE10').used_count, 1)

    def test_unknown_session(self):
        self.assertEqual(materialize_order('cs_unknown'), (None, False))
        self.assertFalse(Order.objects.exists())

    def test_deleted_product_keeps_line(self):
        self.product.delete()
        order, _ = materialize_order('cs_test_1')
        item = order.items.get()
        self.assertIsNone(item.product)
        self.assertEqual(item.title, 'Smart Key')

    @patch('storefront.orders.checkout.send_order_confirmation', side_effect=EmailDeliveryError('smtp down'))
    def test_email_failure_keeps_order(self, send_confirmation):
        order, created = materialize_order('cs_test_1')
        self.assertTrue(created)
        self.assertFalse(order.confirmation_email_sent)


@override_settings(**STRIPE_SETTINGS)
class StripeWebhookTests(TestCase):
    URL = '/api/v1/webhooks/stripe/'

    def setUp(self):
        self.client = APIClient()
        self.product = TestDataFactory.create_product(price='20.00')
        TestDataFactory.create_checkout_session([self.product], stripe_session_id='cs_test_hook')

    def _send(self, event, signature='t=1,v1=sig'):
        extra = {'HTTP_STRIPE_SIGNATURE': signature} if signature else {}
        return self.client.post(self.URL, data=json.dumps(event), content_type='application/json', **extra)

    @patch('stripe.Webhook.construct_event')
    def test_checkout_completed_creates_order(self, construct_event):
        event = {'id': 'evt_1', 'type': 'checkout.session.completed',
                 'data': {'object': {'id': 'cs_test_hook', 'payment_intent': 'pi_hook'}}}
        response = self._send(event)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'received': True})
        order = Order.objects.get(stripe_session_id='cs_test_hook')
        self.assertEqual(order.stripe_payment_intent_id, 'pi_hook')

        # Stripe retries deliver the same event again
        self._send(event)
        self.assertEqual(Order.objects.count(), 1)

    @patch('stripe.Webhook.construct_event')
    def test_invalid_signature(self, construct_event):
        construct_event.side_effect = stripe.SignatureVerificationError('bad signature', 't=1,v1=sig')
        response = self._send({'type': 'checkout.session.completed', 'data': {'object': {'id': 'cs_test_hook'}}})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())

    def test_missing_signature(self):
        response = self._send({'type': 'checkout.session.completed'}, signature=None)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('stripe.Webhook.construct_event')
    def test_checkout_expired(self, construct_event):
        self._send({'type': 'checkout.session.expired', 'data': {'object': {'id': 'cs_test_hook'}}})
        self.assertEqual(CheckoutSession.objects.get(stripe_session_id='cs_test_hook').status, 'expired')

    @patch('stripe.Webhook.construct_event')
    def test_payment_failed(self, construct_event):
        order = TestDataFactory.create_order()
        Order.objects.filter(pk=order.pk).update(stripe_payment_intent_id='pi_failed')
        self._send({'type': 'payment_intent.payment_failed', 'data': {'object': {'id': 'pi_failed'}}})
        order.refresh_from_db()
        self.assertEqual(order.payment_status, 'failed')

    @patch('stripe.Webhook.construct_event')
    def test_unknown_event_is_acknowledged(self, construct_event):
        response = self._send({'type': 'customer.created', 'data': {'object': {'id': 'cus_1'}}})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'received': True})

    @patch('storefront.orders.views.materialize_order', side_effect=RuntimeError('db down'))
    @patch('stripe.Webhook.construct_event')
    def test_handler_error_returns_500(self, construct_event, materialize):
        response = self._send({'type': 'checkout.session.completed', 'data': {'object': {'id': 'cs_test_hook'}}})
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


@override_settings(**STRIPE_SETTINGS)
class CheckoutOrderDetailsTests(TestCase):
    URL = '/api/v1/checkout/order-details/'

    def setUp(self):
        self.client = APIClient()
        self.product = TestDataFactory.create_product(price='20.00')

    def test_requires_session_id(self):
        response = self.client.get(self.URL)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_completed_order(self):
        TestDataFactory.create_checkout_session([self.product], stripe_session_id='cs_done')
        order, _ = materialize_order('cs_done')
        response = self.client.get(self.URL, {'session_id': 'cs_done'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['order']['order_number'], order.order_number)

    @patch('stripe.checkout.Session.retrieve')
    def test_pending_checkout(self, retrieve):
        retrieve.return_value = MagicMock(payment_status='unpaid')
        TestDataFactory.create_checkout_session([self.product], stripe_session_id='cs_pending')
        response = self.client.get(self.URL, {'session_id': 'cs_pending'})
        self.assertEqual(response.data['status'], 'open')
        self.assertEqual(response.data['payment_status'], 'unpaid')

    def test_unknown_session(self):
        response = self.client.get(self.URL, {'session_id': 'cs_missing'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


@override_settings(**STRIPE_SETTINGS)
class OrderAdminEndpointTests(TestCase):
    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.product = TestDataFactory.create_product(title='Smart Key', price='30.00')
        self.order = TestDataFactory.create_order(products=[self.product], email='jane@test.com')

    def test_requires_admin(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.assertEqual(client.get('/api/v1/orders/').status_code, status.HTTP_403_FORBIDDEN)

    def test_list_and_filter(self):
        TestDataFactory.create_order(email='bob@test.com', payment_status='failed')
        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/v1/orders/', {'search': 'jane'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['items'][0]['title'], 'Smart Key')

        response = self.client.get('/api/v1/orders/', {'payment_status': 'failed'})
        self.assertEqual(response.data['results'][0]['customer_email'], 'bob@test.com')

    def test_patch_notes_and_tracking(self):
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {
            'tracking_number': '1Z999', 'notes': 'Leave at door'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tracking_number'], '1Z999')
        self.assertTrue(AuditLog.objects.filter(action='update', model_name='Order').exists())

    def test_status_change(self):
        url = f'/api/v1/orders/{self.order.id}/status/'
        response = self.client.post(url, {'status': 'processing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order_status'], 'processing')
        log = AuditLog.objects.get(action='order_status_change')
        self.assertEqual(log.changes['order_status'], {'old': 'new', 'new': 'processing'})

        response = self.client.post(url, {'status': 'delivered'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['allowed'], ['shipped', 'cancelled'])

    def test_send_shipped_email(self):
        response = self.client.post(f'/api/v1/orders/{self.order.id}/send-shipped-email/',
                                    {'tracking_number': '1Z123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertTrue(self.order.shipped_email_sent)
        self.assertEqual(self.order.tracking_number, '1Z123')
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Tracking Number: 1Z123', mail.outbox[0].body)
        self.assertTrue(AuditLog.objects.filter(action='email_send').exists())

    @patch('storefront.orders.views.send_order_shipped', side_effect=EmailDeliveryError('smtp down'))
    def test_send_shipped_email_failure(self, send_shipped):
        response = self.client.post(f'/api/v1/orders/{self.order.id}/send-shipped-email/')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_delete(self):
        response = self.client.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Order.objects.exists())
        self.assertTrue(AuditLog.objects.filter(action='order_delete', object_name=self.order.order_number).exists())
