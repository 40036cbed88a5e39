"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from storefront.catalog.models import Category, Product, VehicleCompatibility
from storefront.pricing.models import Discount, DiscountVehicle, PromoCode
from storefront.orders.models import ShippingCost, CheckoutSession, Order, OrderItem
from storefront.notifications.models import EmailSubscriber
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(username=None, password='testpass123'):
        return TestDataFactory.create_user(username=username, password=password, is_staff=True, is_superuser=True)

    @staticmethod
    def create_category(name=None, parent=None, is_active=True):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(name=name, parent=parent, is_active=is_active)

    @staticmethod
    def create_product(title=None, sku=None, price='100.00', category=None, status='active'):
        """Create a test product"""
        if not title:
            title = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8)}'
        return Product.objects.create(
            title=title,
            sku=sku,
            price=Decimal(str(price)),
            category=category,
            status=status
        )

    @staticmethod
    def create_compatibility(product, make='Toyota', model='', year_start=None, year_end=None):
        return VehicleCompatibility.objects.create(
            product=product,
            make=make,
            model=model,
            year_start=year_start,
            year_end=year_end
        )

    @staticmethod
    def create_discount(name=None, type='percentage', value='10.00', products=None, categories=None,
                        vehicles=None, apply_to_all=False, active=True, **kwargs):
        """
        Create a test discount. `vehicles` is a list of dicts with make, model,
        year_start and year_end.
        """
        if not name:
            name = f'Discount_{TestDataFactory.random_string(6)}'
        discount = Discount.objects.create(
            name=name,
            type=type,
            value=Decimal(str(value)),
            apply_to_all=apply_to_all,
            active=active,
            **kwargs
        )
        if products:
            discount.applicable_products.set(products)
        if categories:
            discount.applicable_categories.set(categories)
        for vehicle in vehicles or []:
            DiscountVehicle.objects.create(discount=discount, **vehicle)
        return discount

    @staticmethod
    def create_promo_code(code=None, type='percent', value='10.00', **kwargs):
        """Create a test promo code"""
        if not code:
            code = f'PROMO{TestDataFactory.random_string(6).upper()}'
        return PromoCode.objects.create(code=code, type=type, value=Decimal(str(value)), **kwargs)

    @staticmethod
    def create_shipping_cost(cost='5.00'):
        return ShippingCost.objects.create(cost=Decimal(str(cost)))

    @staticmethod
    def create_checkout_session(products, stripe_session_id=None, quantity=1, email='buyer@test.com',
                                promo_code='', promo_discount='0.00', shipping_cost='0.00'):
        """Create a stored checkout snapshot for the given products"""
        if not stripe_session_id:
            stripe_session_id = f'cs_test_{TestDataFactory.random_string(12)}'
        items = []
        subtotal = Decimal('0.00')
        for product in products:
            unit_price = product.effective_price
            items.append({
                'product_id': product.id,
                'title': product.title,
                'sku': product.sku or '',
                'quantity': quantity,
                'unit_price': str(unit_price),
            })
            subtotal += unit_price * quantity
        promo_discount = Decimal(str(promo_discount))
        shipping_cost = Decimal(str(shipping_cost))
        return CheckoutSession.objects.create(
            stripe_session_id=stripe_session_id,
            customer_name='Test Buyer',
            customer_email=email,
            customer_phone='5551234567',
            address={'street': '1 Main St', 'city': 'Austin', 'state': 'TX', 'zip': '78701', 'country': 'US'},
            items=items,
            subtotal=subtotal,
            promo_code=promo_code,
            promo_discount=promo_discount,
            shipping_cost=shipping_cost,
            total=subtotal - promo_discount + shipping_cost
        )

    @staticmethod
    def create_order(products=None, email='buyer@test.com', order_status='new', payment_status='completed',
                     promo_code='', quantity=1):
        """Create a test order with one line per product"""
        order = Order.objects.create(
            customer_name='Test Buyer',
            customer_email=email,
            address_street='1 Main St',
            address_city='Austin',
            address_state='TX',
            address_zip='78701',
            address_country='US',
            promo_code=promo_code,
            order_status=order_status,
            payment_status=payment_status
        )
        subtotal = Decimal('0.00')
        for product in products or []:
            item = OrderItem.objects.create(
                order=order,
                product=product,
                title=product.title,
                sku=product.sku or '',
                quantity=quantity,
                unit_price=product.effective_price
            )
            subtotal += item.line_total
        order.subtotal = subtotal
        order.total = subtotal
        order.save(update_fields=['subtotal', 'total'])
        return order

    @staticmethod
    def create_subscriber(email=None, subscribed=True, source='promo_modal'):
        if not email:
            email = f'{TestDataFactory.random_string(8).lower()}@test.com'
        return EmailSubscriber.objects.create(email=email, subscribed=subscribed, source=source)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
