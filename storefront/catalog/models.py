from django.db import models
from decimal import Decimal


class Category(models.Model):
    """Product categories (nested through parent)"""
    name = models.CharField(max_length=200, db_index=True)
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    description = models.TextField(blank=True)
    image_url = models.URLField(blank=True, max_length=500)
    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def descendant_ids(self):
        """Return this category's id plus the ids of every category below it"""
        ids = [self.id]
        frontier = [self.id]
        while frontier:
            children = list(
                Category.objects.filter(parent_id__in=frontier)
                .exclude(id__in=ids)
                .values_list('id', flat=True)
            )
            ids.extend(children)
            frontier = children
        return ids

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['sort_order', 'name']


class Product(models.Model):
    """Storefront product"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('draft', 'Draft'),
        ('archived', 'Archived'),
    ]

    title = models.CharField(max_length=255, db_index=True)
    sku = models.CharField(max_length=100, unique=True, blank=True, null=True, db_index=True)
    description = models.TextField(blank=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    # Base price. Discounts never overwrite it.
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    regular_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    applied_discount = models.ForeignKey(
        'pricing.Discount', on_delete=models.SET_NULL, null=True, blank=True, related_name='discounted_products'
    )
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    discount_applied_at = models.DateTimeField(null=True, blank=True)
    image_url = models.URLField(blank=True, max_length=500)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.title} ({self.sku or 'NO-SKU'})"

    @property
    def effective_price(self):
        if self.applied_discount_id and self.sale_price is not None:
            return self.sale_price
        return self.price

    @property
    def discount_info(self):
        """Metadata of the discount currently applied to this product, or None"""
        discount = self.applied_discount
        if discount is None or self.sale_price is None:
            return None
        return {
            'discount_id': discount.id,
            'discount_name': discount.name,
            'discount_type': discount.type,
            'discount_value': str(discount.value),
            'original_price': str(self.regular_price if self.regular_price is not None else self.price),
            'discounted_price': str(self.sale_price),
            'discount_amount': str(self.discount_amount or Decimal('0.00')),
            'applied_at': self.discount_applied_at.isoformat() if self.discount_applied_at else None,
            'valid_until': discount.end_date.isoformat() if discount.has_end_date and discount.end_date else None,
        }

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='products_status_created_idx'),
        ]


class VehicleCompatibility(models.Model):
    """A vehicle (make, optional model, optional year span) a product fits"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='compatibilities')
    make = models.CharField(max_length=100, db_index=True)
    model = models.CharField(max_length=100, blank=True)
    year_start = models.PositiveIntegerField(null=True, blank=True)
    year_end = models.PositiveIntegerField(null=True, blank=True)

    def __str__(self):
        years = ''
        if self.year_start or self.year_end:
            years = f" {self.year_start or ''}-{self.year_end or ''}"
        return f"{self.make} {self.model}{years}".strip()

    class Meta:
        db_table = 'vehicle_compatibilities'
        verbose_name_plural = 'vehicle compatibilities'
        ordering = ['make', 'model', 'year_start']
