"""
URL configuration for the Episode Intake project.
"""
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from apps.core.observability.health import HealthzView, ReadyzView

urlpatterns = [
    # Health checks (no auth required)
    path('healthz', HealthzView.as_view(), name='healthz'),
    path('readyz', ReadyzView.as_view(), name='readyz'),

    # Admin
    path('admin/', admin.site.urls),

    # Public funnel API (NO authentication required, throttled)
    path('public/', include('apps.intake.urls_public')),

    # Private API (authentication required)
    path('api/', include('apps.core.urls')),  # JWT auth
    path('api/v1/', include('apps.authz.urls')),  # Clinicians
    path('api/v1/patients/', include('apps.patients.urls')),  # Patient accounts (read-only)
    path('api/v1/intake/', include('apps.intake.urls')),  # Care-request triage
    path('api/v1/episodes/', include('apps.episodes.urls')),  # Conversions, episodes, continuations
    path('api/v1/episodes/', include('apps.discharge.urls')),  # Discharge letters
    path('api/v1/ledger/', include('apps.ledger.urls')),  # Lifecycle events (read-only)
    path('api/v1/notifications/', include('apps.notifications.urls')),  # In-app notifications
    path('api/integrations/', include('apps.integrations.urls')),  # Signed webhooks

    # API Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
