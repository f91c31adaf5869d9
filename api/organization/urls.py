"""
Organization URL Configuration
==============================
Mounted under ``api/v1/<company>/``.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import DivisionViewSet, DepartmentViewSet, TeamViewSet, OrganizationTreeView

router = DefaultRouter()
router.include_root_view = False  # Disable API root view to avoid "api" tag
router.register(r'divisions', DivisionViewSet, basename='division')
router.register(r'departments', DepartmentViewSet, basename='department')
router.register(r'teams', TeamViewSet, basename='team')

urlpatterns = [
    path('organization/', OrganizationTreeView.as_view(), name='organization-tree'),
    path('', include(router.urls)),
]
