"""URL configuration for Rentify.

The `urlpatterns` list routes URLs to views. It includes both Django admin
and application‑level routers provided by Django Rest Framework and each app.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView  # type: ignore

from apps.core.views import healthz
from apps.payments.views import StripeWebhookView

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    path('healthz/', healthz, name='healthz'),
    # API schema and docs
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    # Application URLs
    path('api/v1/auth/', include(('apps.users.auth_urls', 'auth'), namespace='auth')),
    path('api/v1/profile/', include('apps.users.urls')),
    path('api/v1/products/', include('apps.products.urls')),
    path('api/v1/rental-requests/', include('apps.rentals.urls')),
    path('api/v1/payments/', include('apps.payments.urls')),
    path('api/v1/invoices/', include('apps.invoices.urls')),
    path('api/v1/', include('apps.returns.urls')),
    path('api/v1/notifications/', include('apps.notifications.urls')),
    path('api/v1/wishlist/', include('apps.wishlist.urls')),
    path('api/v1/dashboard/', include('apps.dashboard.urls')),
    # Payment provider webhooks
    path('api/v1/webhooks/stripe/', StripeWebhookView.as_view(), name='stripe-webhook'),
]
