from django.urls import path
from .views import (
    shipping_cost_quote, shipping_cost_list_create,
    create_checkout_session, stripe_webhook, checkout_order_details,
    order_list, order_detail, order_update_status, order_send_shipped_email,
)

urlpatterns = [
    # Shipping endpoints
    path('shipping-cost/', shipping_cost_quote, name='shipping-cost-quote'),
    path('shipping-costs/', shipping_cost_list_create, name='shipping-cost-list-create'),

    # Checkout endpoints
    path('checkout/session/', create_checkout_session, name='checkout-session'),
    path('checkout/order-details/', checkout_order_details, name='checkout-order-details'),
    path('webhooks/stripe/', stripe_webhook, name='stripe-webhook'),

    # Order endpoints
    path('orders/', order_list, name='order-list'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', order_update_status, name='order-update-status'),
    path('orders/<int:pk>/send-shipped-email/', order_send_shipped_email, name='order-send-shipped-email'),
]
