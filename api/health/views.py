import datetime
import logging
import os

import redis
from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection
from drf_spectacular.utils import extend_schema, inline_serializer
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)


def check_database():
    """Check database connectivity"""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        return {"status": "ok", "message": "Database connected"}
    except DatabaseError as e:
        logger.warning("Health check: database unavailable: %s", e)
        return {"status": "error", "message": f"Database error: {str(e)}"}


def check_redis():
    """Check the Redis broker/cache (only when the cache runs on Redis)"""
    backend = settings.CACHES['default']['BACKEND']
    if not backend.endswith('RedisCache'):
        return {"status": "not_configured", "message": "Redis cache not in use"}

    try:
        redis.from_url(settings.REDIS_URL).ping()
        return {"status": "ok", "message": "Redis connected"}
    except redis.RedisError as e:
        logger.warning("Health check: redis unavailable: %s", e)
        return {"status": "error", "message": f"Redis error: {str(e)}"}


def check_cache():
    """Check Django cache backend"""
    try:
        cache.set('health_check', 'ok', 10)
        if cache.get('health_check') == 'ok':
            return {"status": "ok", "message": "Cache working"}
        return {"status": "error", "message": "Cache read/write failed"}
    except redis.RedisError as e:
        return {"status": "error", "message": f"Cache error: {str(e)}"}


@extend_schema(
    tags=['Health'],
    summary='健康檢查 / Health Check',
    description='檢查系統是否正常運行。無需認證。\n\nCheck if the system is running normally. No authentication required.',
    responses=inline_serializer(
        name='HealthCheckResponse',
        fields={
            'status': serializers.CharField(),
            'message': serializers.CharField(),
            'timestamp': serializers.CharField(),
        }
    )
)
@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([])
def health_check(request):
    return Response({
        "status": "ok",
        "message": "Weekly report service is up and running",
        "timestamp": datetime.datetime.now().isoformat(),
    }, status=200)


@extend_schema(
    tags=['Health'],
    summary='詳細健康檢查 / Detailed Health Check',
    description='檢查資料庫、Redis 與快取狀態。無需認證。\n\nCheck database, Redis and cache status. No authentication required.',
    responses=inline_serializer(
        name='DetailedHealthCheckResponse',
        fields={
            'status': serializers.CharField(),
            'timestamp': serializers.CharField(),
            'services': serializers.DictField(),
            'version': serializers.CharField(),
        }
    )
)
@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([])
def detailed_health_check(request):
    """Detailed health check with all service statuses"""
    services = {
        "api": {"status": "ok", "message": "API server running"},
        "database": check_database(),
        "redis": check_redis(),
        "cache": check_cache(),
    }

    overall_status = "ok"
    if not all(s["status"] in ["ok", "not_configured"] for s in services.values()):
        overall_status = "degraded"

    return Response({
        "status": overall_status,
        "timestamp": datetime.datetime.now().isoformat(),
        "services": services,
        "version": os.environ.get("APP_VERSION", "1.0.0"),
        "environment": os.environ.get("APP_ENV", "development"),
    }, status=200 if overall_status == "ok" else 503)
