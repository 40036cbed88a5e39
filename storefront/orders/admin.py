from django.contrib import admin
from .models import ShippingCost, CheckoutSession, Order, OrderItem


@admin.register(ShippingCost)
class ShippingCostAdmin(admin.ModelAdmin):
    list_display = ['cost', 'note', 'updated_at']
    ordering = ['-updated_at']


@admin.register(CheckoutSession)
class CheckoutSessionAdmin(admin.ModelAdmin):
    list_display = ['stripe_session_id', 'customer_email', 'total', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['stripe_session_id', 'customer_email', 'customer_name']
    readonly_fields = ['created_at', 'updated_at']


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['line_total']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'customer_email', 'total', 'order_status', 'payment_status', 'created_at']
    list_filter = ['order_status', 'payment_status', 'shipping_status', 'created_at']
    search_fields = ['order_number', 'customer_name', 'customer_email', 'stripe_session_id']
    readonly_fields = ['order_number', 'stripe_session_id', 'stripe_payment_intent_id', 'created_at', 'updated_at']
    inlines = [OrderItemInline]
