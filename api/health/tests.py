"""
Health Check Tests
"""
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from .views import check_redis


class HealthCheckTests(TestCase):
    """Test the public health endpoints"""

    def setUp(self):
        self.client = APIClient()

    def test_health_check(self):
        """Test the basic health check needs no authentication"""
        response = self.client.get('/api/v1/health/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'ok')

    def test_detailed_health_check(self):
        """Test database and cache are reported"""
        response = self.client.get('/api/v1/health/detailed/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['services']['database']['status'], 'ok')
        self.assertEqual(response.data['services']['cache']['status'], 'ok')

    @override_settings(CACHES={'default': {'BACKEND': 'django.core.cache.backends.locmem.LocMemCache'}})
    def test_redis_not_configured_with_local_cache(self):
        """Test redis is skipped when the cache is local memory"""
        self.assertEqual(check_redis()['status'], 'not_configured')
