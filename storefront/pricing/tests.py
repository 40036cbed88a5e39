"""
Comprehensive test suite for Pricing module
Tests: discount price math, product selection, apply/remove/toggle, expiry,
promo code validation and the admin endpoints
"""
from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.cache import cache
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient
from decimal import Decimal
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.models import AuditLog
from storefront.catalog.models import Product
from storefront.pricing.models import Discount, PromoCode
from storefront.pricing.discounts import (
    DiscountError, DiscountNotActive, DiscountNotStarted, DiscountExpired, DiscountLimitReached,
    NoApplicableProducts, compute_discounted_price, resolve_applicable_products, apply_discount,
    remove_discount, preview_discount, reprice_product, set_discount_active, expire_discounts,
)
from storefront.pricing.promo import PromoCodeError, validate_promo_code, redeem_promo_code


def reload(product):
    return Product.objects.select_related('applied_discount').get(pk=product.pk)


class PriceMathTests(TestCase):
    def test_percentage(self):
        self.assertEqual(compute_discounted_price(Decimal('100.00'), 'percentage', Decimal('15')),
                         (Decimal('85.00'), Decimal('15.00')))

    def test_percentage_rounds_half_up_to_cents(self):
        self.assertEqual(compute_discounted_price(Decimal('19.99'), 'percentage', Decimal('15')),
                         (Decimal('16.99'), Decimal('3.00')))

    def test_fixed_never_goes_negative(self):
        self.assertEqual(compute_discounted_price(Decimal('8.00'), 'fixed', Decimal('10')),
                         (Decimal('0.00'), Decimal('8.00')))

    def test_full_percentage(self):
        self.assertEqual(compute_discounted_price(Decimal('42.50'), 'percentage', Decimal('100')),
                         (Decimal('0.00'), Decimal('42.50')))

    def test_unknown_type(self):
        with self.assertRaises(DiscountError):
            compute_discounted_price(Decimal('1.00'), 'bogo', Decimal('1'))


class ProductSelectionTests(TestCase):
    def setUp(self):
        self.keys = TestDataFactory.create_category('Keys')
        self.remotes = TestDataFactory.create_category('Remotes', parent=self.keys)
        self.tools = TestDataFactory.create_category('Tools')
        self.key = TestDataFactory.create_product(title='Key', category=self.keys)
        self.remote = TestDataFactory.create_product(title='Remote', category=self.remotes)
        self.tool = TestDataFactory.create_product(title='Tool', category=self.tools)
        self.draft = TestDataFactory.create_product(title='Draft', category=self.tools, status='draft')

    def _selected(self, discount):
        return set(resolve_applicable_products(discount).values_list('title', flat=True))

    def test_category_selection_includes_subcategories(self):
        discount = TestDataFactory.create_discount(categories=[self.keys])
        self.assertEqual(self._selected(discount), {'Key', 'Remote'})

    def test_explicit_products(self):
        discount = TestDataFactory.create_discount(products=[self.tool, self.draft])
        self.assertEqual(self._selected(discount), {'Tool', 'Draft'})

    def test_apply_to_all_takes_active_products_only(self):
        discount = TestDataFactory.create_discount(apply_to_all=True)
        self.assertEqual(self._selected(discount), {'Key', 'Remote', 'Tool'})

    def test_selectors_are_combined(self):
        discount = TestDataFactory.create_discount(categories=[self.remotes], products=[self.tool])
        self.assertEqual(self._selected(discount), {'Remote', 'Tool'})

    def test_vehicle_selection(self):
        TestDataFactory.create_compatibility(self.key, make='Toyota', model='Camry', year_start=2012, year_end=2017)
        TestDataFactory.create_compatibility(self.remote, make='Toyota', model='', year_start=None, year_end=None)
        TestDataFactory.create_compatibility(self.tool, make='Honda', model='Civic', year_start=2016, year_end=2021)

        discount = TestDataFactory.create_discount(vehicles=[{'make': 'toyota', 'model': 'camry', 'year_start': 2015, 'year_end': 2015}])
        self.assertEqual(self._selected(discount), {'Key', 'Remote'})

        discount = TestDataFactory.create_discount(vehicles=[{'make': 'Toyota', 'model': 'Camry', 'year_start': 2019, 'year_end': 2022}])
        self.assertEqual(self._selected(discount), {'Remote'})

        discount = TestDataFactory.create_discount(vehicles=[{'make': 'Honda'}])
        self.assertEqual(self._selected(discount), {'Tool'})

    def test_blank_vehicle_make_is_ignored(self):
        discount = TestDataFactory.create_discount(vehicles=[{'make': '  '}])
        self.assertEqual(self._selected(discount), set())


class ApplyDiscountTests(TestCase):
    def setUp(self):
        cache.clear()
        self.category = TestDataFactory.create_category('Keys')
        self.a = TestDataFactory.create_product(title='A', price='100.00', category=self.category)
        self.b = TestDataFactory.create_product(title='B', price='19.99', category=self.category)
        self.free = TestDataFactory.create_product(title='Free', price='0.00', category=self.category)

    def test_apply_writes_sale_prices(self):
        discount = TestDataFactory.create_discount(type='percentage', value='15', categories=[self.category])
        changes = apply_discount(discount)

        self.assertEqual(len(changes), 2)
        a = reload(self.a)
        self.assertEqual(a.price, Decimal('100.00'))
        self.assertEqual(a.regular_price, Decimal('100.00'))
        self.assertEqual(a.sale_price, Decimal('85.00'))
        self.assertEqual(a.discount_amount, Decimal('15.00'))
        self.assertEqual(a.applied_discount, discount)
        self.assertIsNotNone(a.discount_applied_at)
        self.assertEqual(a.effective_price, Decimal('85.00'))
        # Zero-priced products are left alone
        self.assertIsNone(reload(self.free).applied_discount)

        discount.refresh_from_db()
        self.assertEqual(discount.used_count, 1)

    def test_apply_twice_is_idempotent(self):
        discount = TestDataFactory.create_discount(type='percentage', value='10', products=[self.a])
        apply_discount(discount)
        apply_discount(discount)
        self.assertEqual(reload(self.a).sale_price, Decimal('90.00'))

    def test_last_applied_discount_wins(self):
        first = TestDataFactory.create_discount(type='percentage', value='10', products=[self.a])
        second = TestDataFactory.create_discount(type='fixed', value='30', products=[self.a])
        apply_discount(first)
        apply_discount(second)
        a = reload(self.a)
        self.assertEqual(a.applied_discount, second)
        self.assertEqual(a.sale_price, Decimal('70.00'))

        # Removing the superseded discount leaves the product alone
        self.assertEqual(remove_discount(first), 0)
        self.assertEqual(reload(self.a).applied_discount, second)

    def test_remove_restores_prices(self):
        discount = TestDataFactory.create_discount(type='percentage', value='15', categories=[self.category])
        apply_discount(discount)
        self.assertEqual(remove_discount(discount), 2)

        a = reload(self.a)
        self.assertEqual(a.price, Decimal('100.00'))
        self.assertIsNone(a.sale_price)
        self.assertIsNone(a.regular_price)
        self.assertIsNone(a.applied_discount)
        self.assertIsNone(a.discount_amount)
        self.assertIsNone(a.discount_info)

    def test_inactive_discount_cannot_be_applied(self):
        discount = TestDataFactory.create_discount(products=[self.a], active=False)
        with self.assertRaises(DiscountNotActive):
            apply_discount(discount)

    def test_scheduled_and_expired_discounts_cannot_be_applied(self):
        now = timezone.now()
        scheduled = TestDataFactory.create_discount(products=[self.a], has_start_date=True, start_date=now + timedelta(days=1))
        expired = TestDataFactory.create_discount(products=[self.a], has_end_date=True, end_date=now - timedelta(days=1))
        with self.assertRaises(DiscountNotStarted):
            apply_discount(scheduled)
        with self.assertRaises(DiscountExpired):
            apply_discount(expired)
        self.assertEqual(scheduled.status, 'scheduled')
        self.assertEqual(expired.status, 'expired')

    def test_no_products(self):
        discount = TestDataFactory.create_discount()
        with self.assertRaises(NoApplicableProducts):
            apply_discount(discount)

    def test_preview_writes_nothing(self):
        discount = TestDataFactory.create_discount(type='fixed', value='5', categories=[self.category])
        changes = preview_discount(discount)
        self.assertEqual([c.as_dict()['discounted_price'] for c in changes], ['95.00', '14.99'])
        self.assertIsNone(reload(self.a).applied_discount)

    def test_toggle_off_and_on(self):
        discount = TestDataFactory.create_discount(type='percentage', value='50', products=[self.a])
        apply_discount(discount)

        self.assertEqual(set_discount_active(discount, False), 1)
        self.assertFalse(discount.active)
        self.assertIsNone(reload(self.a).applied_discount)

        self.assertEqual(set_discount_active(discount, True), 1)
        self.assertEqual(reload(self.a).sale_price, Decimal('50.00'))

    def test_activating_scheduled_discount_only_sets_flag(self):
        discount = TestDataFactory.create_discount(
            products=[self.a], active=False, has_start_date=True, start_date=timezone.now() + timedelta(days=2)
        )
        self.assertEqual(set_discount_active(discount, True), 0)
        discount.refresh_from_db()
        self.assertTrue(discount.active)
        self.assertIsNone(reload(self.a).applied_discount)

    def test_expire_discounts(self):
        discount = TestDataFactory.create_discount(type='percentage', value='10', products=[self.a])
        apply_discount(discount)
        Discount.objects.filter(pk=discount.pk).update(has_end_date=True, end_date=timezone.now() - timedelta(minutes=1))

        self.assertEqual(len(expire_discounts(dry_run=True)), 1)
        self.assertEqual(reload(self.a).applied_discount_id, discount.id)

        expired = expire_discounts()
        self.assertEqual([d.id for d in expired], [discount.id])
        discount.refresh_from_db()
        self.assertFalse(discount.active)
        self.assertIsNone(reload(self.a).applied_discount)

    def test_expire_discounts_command(self):
        TestDataFactory.create_discount(name='Old sale', has_end_date=True, end_date=timezone.now() - timedelta(days=1))
        out = StringIO()
        call_command('expire_discounts', dry_run=True, stdout=out)
        self.assertIn('Would expire: Old sale', out.getvalue())
        call_command('expire_discounts', stdout=out)
        self.assertFalse(Discount.objects.get(name='Old sale').active)


class DiscountBatchAtomicityTests(TestCase):
    """A failure partway through a batch leaves every product as it was"""

    def setUp(self):
        cache.clear()
        self.category = TestDataFactory.create_category('Keys')
        self.a = TestDataFactory.create_product(title='A', price='100.00', category=self.category)
        self.b = TestDataFactory.create_product(title='B', price='50.00', category=self.category)
        self.discount = TestDataFactory.create_discount(type='percentage', value='20', categories=[self.category])

    def _fail_on_second_save(self):
        original_save = Product.save
        calls = []

        def save(product, *args, **kwargs):
            calls.append(product.pk)
            if len(calls) == 2:
                raise DatabaseError('write failed')
            return original_save(product, *args, **kwargs)

        return patch.object(Product, 'save', autospec=True, side_effect=save)

    def test_failed_apply_rolls_back_every_product(self):
        with self._fail_on_second_save():
            with self.assertRaises(DatabaseError):
                apply_discount(self.discount)

        for product in (self.a, self.b):
            product = reload(product)
            self.assertIsNone(product.applied_discount)
            self.assertIsNone(product.sale_price)
            self.assertIsNone(product.regular_price)
            self.assertIsNone(product.discount_amount)
        self.discount.refresh_from_db()
        self.assertEqual(self.discount.used_count, 0)

    def test_failed_remove_rolls_back_every_product(self):
        apply_discount(self.discount)
        with self._fail_on_second_save():
            with self.assertRaises(DatabaseError):
                remove_discount(self.discount)

        self.assertEqual(reload(self.a).sale_price, Decimal('80.00'))
        self.assertEqual(reload(self.b).sale_price, Decimal('40.00'))
        self.assertEqual(Product.objects.filter(applied_discount=self.discount).count(), 2)
        self.discount.refresh_from_db()
        self.assertEqual(self.discount.used_count, 1)


class DiscountUsageLimitTests(TestCase):
    def setUp(self):
        cache.clear()
        self.product = TestDataFactory.create_product(title='Fob', price='40.00')

    def test_limit_blocks_further_applies(self):
        discount = TestDataFactory.create_discount(type='fixed', value='5', products=[self.product], usage_limit=1)
        apply_discount(discount)
        self.assertEqual(discount.used_count, 1)
        self.assertEqual(discount.status, 'limit_reached')
        with self.assertRaises(DiscountLimitReached):
            apply_discount(discount)

    def test_zero_limit_is_unlimited(self):
        discount = TestDataFactory.create_discount(type='fixed', value='5', products=[self.product], usage_limit=0)
        apply_discount(discount)
        apply_discount(discount)
        self.assertEqual(discount.used_count, 2)
        self.assertEqual(discount.status, 'active')

    def test_no_use_counted_when_every_product_is_skipped(self):
        free = TestDataFactory.create_product(title='Free', price='0.00')
        discount = TestDataFactory.create_discount(type='percentage', value='10', products=[free])
        self.assertEqual(apply_discount(discount), [])
        discount.refresh_from_db()
        self.assertEqual(discount.used_count, 0)

    def test_activating_discount_at_its_limit_only_sets_flag(self):
        discount = TestDataFactory.create_discount(
            products=[self.product], active=False, usage_limit=1, used_count=1
        )
        self.assertEqual(set_discount_active(discount, True), 0)
        discount.refresh_from_db()
        self.assertTrue(discount.active)
        self.assertIsNone(reload(self.product).applied_discount)

    def test_editing_an_applied_discount_does_not_count_a_use(self):
        admin = TestDataFactory.create_admin()
        client = AuthenticatedAPIClient().authenticate_user(admin)
        discount = TestDataFactory.create_discount(type='percentage', value='10', products=[self.product], usage_limit=1)
        apply_discount(discount)

        response = client.patch(f'/api/v1/discounts/{discount.id}/', {'value': '70'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated_count'], 1)
        self.assertEqual(reload(self.product).sale_price, Decimal('30.00'))
        discount.refresh_from_db()
        self.assertEqual(discount.used_count, 1)


class ProductRepricingTests(TestCase):
    """Editing the base price of a discounted product"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.product = TestDataFactory.create_product(title='Fob', price='100.00')
        self.discount = TestDataFactory.create_discount(type='percentage', value='10', products=[self.product])
        apply_discount(self.discount)

    def test_price_edit_recomputes_sale_price(self):
        response = self.client.patch(f'/api/v1/products/{self.product.id}/', {'price': '200.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['sale_price'], '180.00')
        self.assertEqual(response.data['effective_price'], '180.00')

        product = reload(self.product)
        self.assertEqual(product.price, Decimal('200.00'))
        self.assertEqual(product.regular_price, Decimal('200.00'))
        self.assertEqual(product.sale_price, Decimal('180.00'))
        self.assertEqual(product.discount_amount, Decimal('20.00'))
        self.assertEqual(product.applied_discount, self.discount)

    def test_remove_keeps_the_edited_price(self):
        self.client.patch(f'/api/v1/products/{self.product.id}/', {'price': '200.00'}, format='json')
        remove_discount(self.discount)

        product = reload(self.product)
        self.assertEqual(product.price, Decimal('200.00'))
        self.assertEqual(product.effective_price, Decimal('200.00'))
        self.assertIsNone(product.sale_price)

    def test_other_edits_leave_discount_alone(self):
        response = self.client.patch(f'/api/v1/products/{self.product.id}/', {'title': 'Smart fob'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(reload(self.product).sale_price, Decimal('90.00'))

    def test_zero_price_clears_discount(self):
        product = reload(self.product)
        product.price = Decimal('0.00')
        product.save()
        self.assertIsNone(reprice_product(product))

        product = reload(self.product)
        self.assertIsNone(product.applied_discount)
        self.assertIsNone(product.sale_price)
        self.assertEqual(product.effective_price, Decimal('0.00'))


class DiscountEndpointTests(TestCase):
    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.product = TestDataFactory.create_product(title='Fob', price='40.00')

    def test_requires_admin(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.assertEqual(client.get('/api/v1/discounts/').status_code, status.HTTP_403_FORBIDDEN)

    def test_create_applies_immediately(self):
        response = self.client.post('/api/v1/discounts/', {
            'name': 'Launch', 'type': 'percentage', 'value': '25', 'applicable_products': [self.product.id],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['updated_count'], 1)
        self.assertEqual(response.data['status'], 'active')
        self.assertEqual(reload(self.product).sale_price, Decimal('30.00'))

    def test_create_with_vehicle_year(self):
        TestDataFactory.create_compatibility(self.product, make='Ford', model='F-150', year_start=2015, year_end=2020)
        response = self.client.post('/api/v1/discounts/', {
            'name': 'Truck week', 'type': 'fixed', 'value': '10',
            'vehicles': [{'make': 'Ford', 'model': 'F-150', 'year': 2018}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['vehicles'][0]['year_start'], 2018)
        self.assertEqual(response.data['vehicles'][0]['year_end'], 2018)
        self.assertEqual(reload(self.product).sale_price, Decimal('30.00'))

    def test_validation(self):
        response = self.client.post('/api/v1/discounts/', {'name': 'Too much', 'type': 'percentage', 'value': '150'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('value', response.data)

        response = self.client.post('/api/v1/discounts/', {
            'name': 'No date', 'type': 'fixed', 'value': '5', 'has_end_date': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_date', response.data)

        now = timezone.now()
        response = self.client.post('/api/v1/discounts/', {
            'name': 'Backwards', 'type': 'fixed', 'value': '5',
            'has_start_date': True, 'start_date': (now + timedelta(days=5)).isoformat(),
            'has_end_date': True, 'end_date': now.isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_reprices_products(self):
        discount = TestDataFactory.create_discount(type='percentage', value='10', products=[self.product])
        apply_discount(discount)
        response = self.client.patch(f'/api/v1/discounts/{discount.id}/', {'value': '50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(reload(self.product).sale_price, Decimal('20.00'))

    def test_delete_restores_products(self):
        discount = TestDataFactory.create_discount(type='percentage', value='10', products=[self.product])
        apply_discount(discount)
        response = self.client.delete(f'/api/v1/discounts/{discount.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        product = reload(self.product)
        self.assertIsNone(product.sale_price)
        self.assertEqual(product.price, Decimal('40.00'))

    def test_apply_remove_preview_toggle_endpoints(self):
        discount = TestDataFactory.create_discount(type='fixed', value='15', products=[self.product])

        response = self.client.get(f'/api/v1/discounts/{discount.id}/preview/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['products'][0]['discounted_price'], '25.00')

        response = self.client.post(f'/api/v1/discounts/{discount.id}/apply/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated_count'], 1)
        self.assertTrue(AuditLog.objects.filter(action='discount_apply').exists())

        response = self.client.post(f'/api/v1/discounts/{discount.id}/remove/')
        self.assertEqual(response.data['restored_count'], 1)

        response = self.client.post(f'/api/v1/discounts/{discount.id}/toggle/')
        self.assertFalse(response.data['active'])
        self.assertEqual(response.data['status'], 'inactive')

        response = self.client.post(f'/api/v1/discounts/{discount.id}/apply/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(f'/api/v1/discounts/{discount.id}/toggle/', {'active': True}, format='json')
        self.assertTrue(response.data['active'])
        self.assertEqual(response.data['updated_count'], 1)


class PromoCodeTests(TestCase):
    def test_code_and_email_are_normalized(self):
        promo = TestDataFactory.create_promo_code(code='  save10 ', allowed_email='VIP@Test.com')
        self.assertEqual(promo.code, 'SAVE10')
        self.assertEqual(promo.allowed_email, 'vip@test.com')

    def test_percent_amount(self):
        TestDataFactory.create_promo_code(code='SAVE10', type='percent', value='10')
        promo, amount = validate_promo_code('save10', 'a@test.com', Decimal('55.55'))
        self.assertEqual(promo.code, 'SAVE10')
        self.assertEqual(amount, Decimal('5.56'))

    def test_fixed_amount_is_capped_at_subtotal(self):
        TestDataFactory.create_promo_code(code='TENOFF', type='fixed', value='10')
        _, amount = validate_promo_code('TENOFF', '', Decimal('6.00'))
        self.assertEqual(amount, Decimal('6.00'))

    def test_rejections(self):
        now = timezone.now()
        TestDataFactory.create_promo_code(code='OFF', active=False)
        TestDataFactory.create_promo_code(code='OLD', expires_at=now - timedelta(days=1))
        TestDataFactory.create_promo_code(code='USED', usage_limit=2, used_count=2)
        TestDataFactory.create_promo_code(code='VIP', allowed_email='vip@test.com')

        cases = {
            '': 'Promo code is required',
            'MISSING': 'Invalid promo code',
            'OFF': 'Invalid promo code',
            'OLD': 'This promo code has expired',
            'USED': 'This promo code has reached its usage limit',
            'VIP': 'This promo code is not valid for your email address',
        }
        for code, message in cases.items():
            with self.assertRaisesMessage(PromoCodeError, message):
                validate_promo_code(code, 'someone@test.com', Decimal('20.00'))

        _, amount = validate_promo_code('VIP', 'VIP@test.com', Decimal('20.00'))
        self.assertEqual(amount, Decimal('2.00'))

    def test_one_use_per_email(self):
        TestDataFactory.create_promo_code(code='ONCE')
        TestDataFactory.create_order(email='repeat@test.com', promo_code='ONCE', payment_status='completed')
        with self.assertRaisesMessage(PromoCodeError, 'You have already used this promo code'):
            validate_promo_code('ONCE', 'Repeat@test.com', Decimal('20.00'))
        # A failed payment does not count as a use
        TestDataFactory.create_order(email='other@test.com', promo_code='ONCE', payment_status='failed')
        validate_promo_code('ONCE', 'other@test.com', Decimal('20.00'))

    def test_redeem(self):
        TestDataFactory.create_promo_code(code='COUNT')
        self.assertTrue(redeem_promo_code('count'))
        self.assertEqual(PromoCode.objects.get(code='COUNT').used_count, 1)
        self.assertFalse(redeem_promo_code('NOPE'))

    def test_validate_endpoint(self):
        TestDataFactory.create_promo_code(code='WELCOME', type='fixed', value='5')
        client = APIClient()
        response = client.post('/api/v1/promo-codes/validate/', {
            'code': 'welcome', 'email': 'new@test.com', 'subtotal': '30.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['valid'])
        self.assertEqual(response.data['discount_amount'], '5.00')

        response = client.post('/api/v1/promo-codes/validate/', {'code': 'NOPE', 'subtotal': '30.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['valid'])

    def test_admin_create_rejects_duplicate(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = client.post('/api/v1/promo-codes/', {'code': 'spring', 'type': 'percent', 'value': '20'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'SPRING')
        response = client.post('/api/v1/promo-codes/', {'code': 'SPRING', 'type': 'percent', 'value': '20'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
