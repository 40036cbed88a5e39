from django.urls import path
from .views import (
    discount_list_create, discount_detail,
    discount_apply, discount_remove, discount_toggle, discount_preview,
    promo_code_list_create, promo_code_detail, promo_code_validate,
)

urlpatterns = [
    # Discount endpoints
    path('discounts/', discount_list_create, name='discount-list-create'),
    path('discounts/<int:pk>/', discount_detail, name='discount-detail'),
    path('discounts/<int:pk>/apply/', discount_apply, name='discount-apply'),
    path('discounts/<int:pk>/remove/', discount_remove, name='discount-remove'),
    path('discounts/<int:pk>/toggle/', discount_toggle, name='discount-toggle'),
    path('discounts/<int:pk>/preview/', discount_preview, name='discount-preview'),

    # PromoCode endpoints
    path('promo-codes/', promo_code_list_create, name='promo-code-list-create'),
    path('promo-codes/validate/', promo_code_validate, name='promo-code-validate'),
    path('promo-codes/<int:pk>/', promo_code_detail, name='promo-code-detail'),
]
