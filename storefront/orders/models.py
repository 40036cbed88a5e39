from django.db import models
from django.utils import timezone
from decimal import Decimal
import uuid


class InvalidStatusTransition(Exception):
    """Raised when an order is moved to a status it cannot reach from its current one"""

    def __init__(self, current, target, allowed):
        self.current = current
        self.target = target
        self.allowed = list(allowed)
        allowed_text = ', '.join(self.allowed) if self.allowed else 'none'
        super().__init__(f'Cannot change order status from "{current}" to "{target}". Allowed: {allowed_text}')


class ShippingCost(models.Model):
    """Flat shipping cost. The most recently updated row is the current one"""
    cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    note = models.CharField(max_length=255, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.cost}"

    @classmethod
    def current(cls):
        latest = cls.objects.order_by('-updated_at', '-id').first()
        return latest.cost if latest else Decimal('0.00')

    class Meta:
        db_table = 'shipping_costs'
        ordering = ['-updated_at']


class CheckoutSession(models.Model):
    """Snapshot of a started checkout, kept until Stripe reports the outcome"""
    STATUS_CHOICES = [
        ('open', 'Open'),
        ('completed', 'Completed'),
        ('expired', 'Expired'),
        ('failed', 'Failed'),
    ]

    stripe_session_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=30, blank=True)
    address = models.JSONField(default=dict, blank=True)  # street, city, state, zip, country
    items = models.JSONField(default=list)  # [{product_id, title, sku, quantity, unit_price}]
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    promo_code = models.CharField(max_length=50, blank=True)
    promo_discount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    shipping_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='open', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.stripe_session_id or f"checkout-{self.pk}"

    class Meta:
        db_table = 'checkout_sessions'
        ordering = ['-created_at']


def generate_order_number():
    return f"ORD-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"


class Order(models.Model):
    """Paid storefront order"""
    ORDER_STATUS_CHOICES = [
        ('new', 'New'),
        ('processing', 'Processing'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]

    SHIPPING_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
    ]

    # Allowed next states for each order status
    STATUS_TRANSITIONS = {
        'new': ['processing', 'cancelled'],
        'processing': ['shipped', 'cancelled'],
        'shipped': ['delivered'],
        'delivered': [],
        'cancelled': [],
    }

    order_number = models.CharField(max_length=50, unique=True, default=generate_order_number)
    stripe_session_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    stripe_payment_intent_id = models.CharField(max_length=255, blank=True, db_index=True)
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField(db_index=True)
    customer_phone = models.CharField(max_length=30, blank=True)
    address_street = models.CharField(max_length=255, blank=True)
    address_city = models.CharField(max_length=100, blank=True)
    address_state = models.CharField(max_length=100, blank=True)
    address_zip = models.CharField(max_length=20, blank=True)
    address_country = models.CharField(max_length=100, blank=True)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    promo_code = models.CharField(max_length=50, blank=True, db_index=True)
    promo_discount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    shipping_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    order_status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES, default='new', db_index=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending', db_index=True)
    shipping_status = models.CharField(max_length=20, choices=SHIPPING_STATUS_CHOICES, default='pending')
    tracking_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    confirmation_email_sent = models.BooleanField(default=False)
    shipped_email_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_number

    @property
    def shipping_address(self):
        """One-line shipping address"""
        city_line = ' '.join(part for part in [self.address_state, self.address_zip] if part)
        parts = [self.address_street, self.address_city, city_line, self.address_country]
        return ', '.join(part for part in parts if part)

    def allowed_transitions(self):
        return self.STATUS_TRANSITIONS.get(self.order_status, [])

    def transition_to(self, new_status):
        """
        Move the order to `new_status`. Returns True when the status changed.

        Setting the current status again is a no-op. Shipping status follows
        the shipped and delivered states.
        """
        if new_status not in self.STATUS_TRANSITIONS:
            raise InvalidStatusTransition(self.order_status, new_status, self.allowed_transitions())
        if new_status == self.order_status:
            return False
        if new_status not in self.allowed_transitions():
            raise InvalidStatusTransition(self.order_status, new_status, self.allowed_transitions())

        self.order_status = new_status
        if new_status == 'shipped':
            self.shipping_status = 'shipped'
        elif new_status == 'delivered':
            self.shipping_status = 'delivered'
        self.save(update_fields=['order_status', 'shipping_status', 'updated_at'])
        return True

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='orders_created_idx'),
        ]


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    title = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    line_total = models.DecimalField(max_digits=10, decimal_places=2)

    def __str__(self):
        return f"{self.order.order_number} - {self.title} x {self.quantity}"

    def save(self, *args, **kwargs):
        self.line_total = self.unit_price * self.quantity
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'order_items'
