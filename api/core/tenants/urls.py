"""
Tenant URL Configuration
========================
``urlpatterns`` are mounted under ``api/v1/<company>/``;
``hq_urlpatterns`` under ``api/v1/hq/``.
"""

from django.urls import path

from .views import (
    BrandingView,
    HqCompanyDetailView,
    HqCompanyListCreateView,
    HqCompanyUserLimitView,
    IpWhitelistView,
    NotificationPreferencesView,
    OrganizationLevelsView,
    TenantSettingsView,
    WelcomePageView,
)

urlpatterns = [
    path('settings/', TenantSettingsView.as_view(), name='tenant-settings'),
    path('welcome-page/', WelcomePageView.as_view(), name='tenant-welcome-page'),
    path('settings/ip-whitelist/', IpWhitelistView.as_view(), name='tenant-ip-whitelist'),
    path('settings/branding/', BrandingView.as_view(), name='tenant-branding'),
    path('settings/organization-levels/', OrganizationLevelsView.as_view(), name='tenant-organization-levels'),
    path(
        'settings/notification-preferences/',
        NotificationPreferencesView.as_view(),
        name='tenant-notification-preferences'
    ),
]

hq_urlpatterns = [
    path('companies/', HqCompanyListCreateView.as_view(), name='hq-company-list'),
    path('companies/<uuid:pk>/', HqCompanyDetailView.as_view(), name='hq-company-detail'),
    path('companies/<uuid:pk>/user-limit/', HqCompanyUserLimitView.as_view(), name='hq-company-user-limit'),
]
