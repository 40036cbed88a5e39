"""
URL configuration for the storefront project.

Every app mounts its endpoints under /api/v1/; the Django admin site is the
fallback back-office for records without a dedicated admin endpoint.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = f"{settings.STORE_NAME} Admin Panel"
admin.site.site_title = f"{settings.STORE_NAME} Admin Portal"
admin.site.index_title = f"Welcome to {settings.STORE_NAME} Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('storefront.core.urls')),
    path('api/v1/', include('storefront.catalog.urls')),
    path('api/v1/', include('storefront.vehicles.urls')),
    path('api/v1/', include('storefront.pricing.urls')),
    path('api/v1/', include('storefront.orders.urls')),
    path('api/v1/', include('storefront.notifications.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
