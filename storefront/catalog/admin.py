from django.contrib import admin
from storefront.pricing.discounts import reprice_product
from .models import Category, Product, VehicleCompatibility


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'parent', 'is_active', 'sort_order', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name']
    ordering = ['sort_order', 'name']


class VehicleCompatibilityInline(admin.TabularInline):
    model = VehicleCompatibility
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['title', 'sku', 'category', 'price', 'sale_price', 'applied_discount', 'status', 'created_at']
    list_filter = ['status', 'category', 'created_at']
    search_fields = ['title', 'sku', 'description']
    ordering = ['title']
    inlines = [VehicleCompatibilityInline]
    readonly_fields = ['sale_price', 'regular_price', 'applied_discount', 'discount_amount', 'discount_applied_at', 'created_at', 'updated_at']

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        if change and 'price' in form.changed_data and obj.applied_discount_id:
            reprice_product(obj)
