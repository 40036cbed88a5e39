from django.urls import path
from .views import (
    category_list_create, category_detail,
    product_list_create, product_detail,
    product_compatibility, product_compatibility_delete,
    check_sku, next_sku,
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/check-sku/', check_sku, name='product-check-sku'),
    path('products/next-sku/', next_sku, name='product-next-sku'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/compatibility/', product_compatibility, name='product-compatibility'),
    path('products/<int:pk>/compatibility/<int:compatibility_id>/', product_compatibility_delete, name='product-compatibility-delete'),
]
