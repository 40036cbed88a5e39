"""
Tests for the catalog: categories, storefront product listing and filters,
vehicle compatibility and SKU helpers
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from decimal import Decimal
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.models import AuditLog
from storefront.catalog.models import Category, Product, VehicleCompatibility
from storefront.catalog.utils import next_available_sku, is_sku_available
from storefront.pricing.discounts import apply_discount


class CategoryTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin = TestDataFactory.create_admin()
        self.admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_descendant_ids(self):
        root = TestDataFactory.create_category('Keys')
        child = TestDataFactory.create_category('Remote Keys', parent=root)
        grandchild = TestDataFactory.create_category('Flip Keys', parent=child)
        TestDataFactory.create_category('Tools')
        self.assertEqual(set(root.descendant_ids()), {root.id, child.id, grandchild.id})
        self.assertEqual(set(grandchild.descendant_ids()), {grandchild.id})

    def test_public_list_hides_inactive(self):
        TestDataFactory.create_category('Visible')
        TestDataFactory.create_category('Hidden', is_active=False)
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data], ['Visible'])

    def test_admin_list_includes_inactive(self):
        TestDataFactory.create_category('Visible')
        TestDataFactory.create_category('Hidden', is_active=False)
        response = self.admin_client.get('/api/v1/categories/')
        self.assertEqual(len(response.data), 2)

    def test_public_list_refreshes_after_change(self):
        self.client.get('/api/v1/categories/')
        TestDataFactory.create_category('Added later')
        response = self.client.get('/api/v1/categories/')
        self.assertEqual([c['name'] for c in response.data], ['Added later'])

    def test_anonymous_cannot_create(self):
        response = self.client.post('/api/v1/categories/', {'name': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cannot_nest_under_own_subcategory(self):
        root = TestDataFactory.create_category('Keys')
        child = TestDataFactory.create_category('Remote Keys', parent=root)
        response = self.admin_client.patch(f'/api/v1/categories/{root.id}/', {'parent': child.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('parent', response.data)


class ProductListTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.keys = TestDataFactory.create_category('Keys')
        self.remotes = TestDataFactory.create_category('Remotes', parent=self.keys)
        self.key = TestDataFactory.create_product(title='Toyota Smart Key', sku='1001', price='50.00', category=self.keys)
        self.remote = TestDataFactory.create_product(title='Honda Remote Fob', sku='1002', price='80.00', category=self.remotes)
        self.draft = TestDataFactory.create_product(title='Draft Key', sku='1003', price='10.00', status='draft')
        TestDataFactory.create_compatibility(self.key, make='Toyota', model='Camry', year_start=2015, year_end=2020)
        TestDataFactory.create_compatibility(self.remote, make='Honda', model='', year_start=None, year_end=None)

    def _titles(self, response):
        return {p['title'] for p in response.data['results']}

    def test_public_list_shows_only_active(self):
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self._titles(response), {'Toyota Smart Key', 'Honda Remote Fob'})
        self.assertEqual(response.data['page_size'], 24)

    def test_staff_list_shows_all(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = client.get('/api/v1/products/')
        self.assertEqual(response.data['count'], 3)

    def test_search_matches_every_word(self):
        response = self.client.get('/api/v1/products/', {'search': 'smart toyota'})
        self.assertEqual(self._titles(response), {'Toyota Smart Key'})
        response = self.client.get('/api/v1/products/', {'search': 'toyota fob'})
        self.assertEqual(response.data['count'], 0)

    def test_category_filter_includes_subcategories(self):
        response = self.client.get('/api/v1/products/', {'category': self.keys.id})
        self.assertEqual(self._titles(response), {'Toyota Smart Key', 'Honda Remote Fob'})
        response = self.client.get('/api/v1/products/', {'category': self.remotes.id})
        self.assertEqual(self._titles(response), {'Honda Remote Fob'})

    def test_vehicle_filters(self):
        response = self.client.get('/api/v1/products/', {'make': 'toyota', 'year': 2018})
        self.assertEqual(self._titles(response), {'Toyota Smart Key'})
        response = self.client.get('/api/v1/products/', {'make': 'toyota', 'year': 2021})
        self.assertEqual(response.data['count'], 0)
        # Open year bounds fit any year
        response = self.client.get('/api/v1/products/', {'make': 'Honda', 'year': 1999})
        self.assertEqual(self._titles(response), {'Honda Remote Fob'})

    def test_price_filters_use_sale_price(self):
        discount = TestDataFactory.create_discount(type='percentage', value='50', products=[self.remote])
        apply_discount(discount)

        response = self.client.get('/api/v1/products/', {'max_price': '45'})
        self.assertEqual(self._titles(response), {'Honda Remote Fob'})

        response = self.client.get('/api/v1/products/', {'on_sale': 'true'})
        self.assertEqual(self._titles(response), {'Honda Remote Fob'})
        item = response.data['results'][0]
        self.assertEqual(item['effective_price'], '40.00')
        self.assertTrue(item['on_sale'])

    def test_ordering_by_price(self):
        response = self.client.get('/api/v1/products/', {'ordering': '-price'})
        self.assertEqual([p['title'] for p in response.data['results']], ['Honda Remote Fob', 'Toyota Smart Key'])

    def test_list_cache_is_invalidated_on_product_change(self):
        self.client.get('/api/v1/products/')
        self.key.title = 'Toyota Proximity Key'
        self.key.save()
        response = self.client.get('/api/v1/products/')
        self.assertIn('Toyota Proximity Key', self._titles(response))


class ProductDetailTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin = TestDataFactory.create_admin()
        self.admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.product = TestDataFactory.create_product(title='Key Blank', sku='2001', price='20.00')

    def test_public_detail_of_draft_is_not_found(self):
        self.product.status = 'draft'
        self.product.save()
        response = self.client.get(f'/api/v1/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.admin_client.get(f'/api/v1/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_detail_includes_discount_info(self):
        discount = TestDataFactory.create_discount(name='Summer', type='fixed', value='5', products=[self.product])
        apply_discount(discount)
        response = self.client.get(f'/api/v1/products/{self.product.id}/')
        info = response.data['discount_info']
        self.assertEqual(info['discount_name'], 'Summer')
        self.assertEqual(info['original_price'], '20.00')
        self.assertEqual(info['discounted_price'], '15.00')
        self.assertEqual(info['discount_amount'], '5.00')

    def test_create_product_is_audited(self):
        response = self.admin_client.post('/api/v1/products/', {
            'title': 'New Fob', 'sku': '2002', 'price': '12.50'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Product', object_reference='2002').exists())

    def test_duplicate_sku_is_rejected(self):
        response = self.admin_client.post('/api/v1/products/', {
            'title': 'Copy', 'sku': '2001', 'price': '1.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('sku', response.data)

    def test_negative_price_is_rejected(self):
        response = self.admin_client.patch(f'/api/v1/products/{self.product.id}/', {'price': '-1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_records_changes(self):
        response = self.admin_client.patch(f'/api/v1/products/{self.product.id}/', {'price': '25.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(action='update', model_name='Product')
        self.assertEqual(log.changes['price'], {'old': '20.00', 'new': '25.00'})

    def test_anonymous_cannot_delete(self):
        response = self.client.delete(f'/api/v1/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Product.objects.filter(pk=self.product.pk).exists())


class CompatibilityTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        self.product = TestDataFactory.create_product()

    def test_add_and_remove_compatibility(self):
        url = f'/api/v1/products/{self.product.id}/compatibility/'
        response = self.client.post(url, {'make': ' Ford ', 'model': 'F-150', 'year_start': 2015, 'year_end': 2020}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['make'], 'Ford')

        response = self.client.get(url)
        self.assertEqual(len(response.data), 1)

        compatibility_id = response.data[0]['id']
        response = self.client.delete(f'{url}{compatibility_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(VehicleCompatibility.objects.exists())

    def test_year_range_must_be_ordered(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/compatibility/', {
            'make': 'Ford', 'year_start': 2020, 'year_end': 2010
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SkuTests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())

    def test_next_sku_fills_first_gap(self):
        self.assertEqual(next_available_sku(), '1')
        for sku in ['1', '2', '4', 'ABC']:
            TestDataFactory.create_product(sku=sku)
        self.assertEqual(next_available_sku(), '3')
        response = self.client.get('/api/v1/products/next-sku/')
        self.assertEqual(response.data['next_sku'], '3')

    def test_check_sku(self):
        product = TestDataFactory.create_product(sku='ABC-1')
        self.assertFalse(is_sku_available('abc-1'))
        self.assertTrue(is_sku_available('ABC-1', exclude_product_id=product.id))

        response = self.client.get('/api/v1/products/check-sku/', {'sku': 'ABC-1'})
        self.assertFalse(response.data['is_available'])
        response = self.client.get('/api/v1/products/check-sku/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_effective_price_without_discount(self):
        product = TestDataFactory.create_product(price='9.99')
        self.assertEqual(product.effective_price, Decimal('9.99'))
        self.assertIsNone(product.discount_info)
