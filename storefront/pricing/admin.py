from django.contrib import admin
from .models import Discount, DiscountVehicle, PromoCode


class DiscountVehicleInline(admin.TabularInline):
    model = DiscountVehicle
    extra = 0


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'value', 'active', 'apply_to_all', 'start_date', 'end_date', 'used_count', 'created_at']
    list_filter = ['type', 'active', 'apply_to_all', 'created_at']
    search_fields = ['name', 'description']
    ordering = ['-created_at']
    filter_horizontal = ['applicable_products', 'applicable_categories']
    inlines = [DiscountVehicleInline]
    readonly_fields = ['used_count', 'created_at', 'updated_at']


@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = ['code', 'type', 'value', 'active', 'expires_at', 'used_count', 'usage_limit', 'allowed_email']
    list_filter = ['type', 'active']
    search_fields = ['code', 'allowed_email']
    ordering = ['-created_at']
    readonly_fields = ['used_count', 'created_at', 'updated_at']
