"""
Health URLs
===========
Unauthenticated liveness and dependency checks, mounted under /api/v1/.
"""
from django.urls import path

from .views import health_check, detailed_health_check

urlpatterns = [
    path('health/', health_check, name='health'),
    path('health/detailed/', detailed_health_check, name='health-detailed'),
]
