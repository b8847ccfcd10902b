"""URL configuration for HostelHub project.

The `urlpatterns` list routes URLs to views. It includes the Django admin,
the booking API, the payment gateway webhook and the OpenAPI schema.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    # Application URLs
    path('api/v1/bookings/', include('apps.bookings.urls')),
    # Payment gateway webhooks
    path('api/v1/webhook/', include('apps.payments.urls')),
    # API docs
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]
