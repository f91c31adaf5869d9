"""
Weekly Report URL Configuration
===============================
Mounted under ``api/v1/<company>/``.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import WeeklyReportViewSet

router = DefaultRouter()
router.include_root_view = False  # Disable API root view to avoid "api" tag
router.register(r'weekly-reports', WeeklyReportViewSet, basename='weekly-report')

urlpatterns = [
    path('', include(router.urls)),
]
