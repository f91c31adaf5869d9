from django.contrib import admin
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)
from core.tenants.urls import hq_urlpatterns
from core.views.notification_views import NotificationViewSet
from users.urls import auth_urlpatterns


# Create router for notifications
notification_router = DefaultRouter()
notification_router.include_root_view = False
notification_router.register(r'notifications', NotificationViewSet, basename='notification')


# Everything a tenant exposes under /api/v1/<company>/
tenant_urlpatterns = [
    path('', include('core.tenants.urls')),
    path('', include('users.urls')),
    path('', include('organization.urls')),
    path('', include('weekly_reports.urls')),
    path('', include('holidays.urls')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),

    # Auth (JWT, registration, Google OAuth)
    path('api/v1/auth/', include(auth_urlpatterns)),

    # HQ portal
    path('api/v1/hq/', include(hq_urlpatterns)),

    # Notifications
    path('api/v1/', include(notification_router.urls)),

    # Health
    path('api/v1/', include('health.urls')),

    # Tenant Modules
    path('api/v1/<slug:company>/', include(tenant_urlpatterns)),
]
