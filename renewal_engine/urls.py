"""
URL configuration for the insurance renewal lifecycle engine.
"""

from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from rest_framework.permissions import AllowAny


# Public schema view (allow docs without auth)
class PublicSchemaView(SpectacularAPIView):
    permission_classes = [AllowAny]


# API URL patterns
api_patterns = [
    # Core utilities
    path('core/', include('apps.core.urls')),

    # Renewal lifecycle
    path('renewals/', include('apps.renewals.urls')),
    path('renewal-settings/', include('apps.renewal_settings.urls')),

    # API Documentation
    path('schema/', PublicSchemaView.as_view(), name='schema'),
    path('docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include(api_patterns)),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)

# Admin site customization
admin.site.site_header = 'Insurance Renewal Engine'
admin.site.site_title = 'Renewal Engine Admin'
admin.site.index_title = 'Administration Dashboard'
