from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal


class Discount(models.Model):
    """Catalog discount applied to product prices"""
    TYPE_CHOICES = [
        ('percentage', 'Percentage'),
        ('fixed', 'Fixed Amount'),
    ]

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='percentage')
    value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    has_start_date = models.BooleanField(default=False)
    start_date = models.DateTimeField(null=True, blank=True)
    has_end_date = models.BooleanField(default=False)
    end_date = models.DateTimeField(null=True, blank=True)
    active = models.BooleanField(default=True, db_index=True)
    # "All products" flag
    apply_to_all = models.BooleanField(default=False)
    applicable_products = models.ManyToManyField('catalog.Product', related_name='discounts', blank=True)
    applicable_categories = models.ManyToManyField('catalog.Category', related_name='discounts', blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def status(self):
        now = timezone.now()
        if not self.active:
            return 'inactive'
        if self.has_start_date and self.start_date and self.start_date > now:
            return 'scheduled'
        if self.has_end_date and self.end_date and self.end_date < now:
            return 'expired'
        if self.usage_limit and self.used_count >= self.usage_limit:
            return 'limit_reached'
        return 'active'

    class Meta:
        db_table = 'discounts'
        ordering = ['-created_at']


class DiscountVehicle(models.Model):
    """Vehicle selector of a discount: make, optional model, optional year span"""
    discount = models.ForeignKey(Discount, on_delete=models.CASCADE, related_name='vehicles')
    make = models.CharField(max_length=100)
    model = models.CharField(max_length=100, blank=True)
    # A single year is stored as year_start == year_end
    year_start = models.PositiveIntegerField(null=True, blank=True)
    year_end = models.PositiveIntegerField(null=True, blank=True)

    def __str__(self):
        return f"{self.make} {self.model}".strip()

    class Meta:
        db_table = 'discount_vehicles'


class PromoCode(models.Model):
    """Checkout promo code"""
    TYPE_CHOICES = [
        ('percent', 'Percent'),
        ('fixed', 'Fixed Amount'),
    ]

    code = models.CharField(max_length=50, unique=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='percent')
    value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    expires_at = models.DateTimeField(null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    active = models.BooleanField(default=True)
    # Blank means anyone may use the code
    allowed_email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        self.allowed_email = (self.allowed_email or '').strip().lower()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'promo_codes'
        ordering = ['-created_at']
