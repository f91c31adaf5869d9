"""
API Exception Handler
=====================
Project-wide DRF exception handler.

Configured in settings.py:
    REST_FRAMEWORK = {'EXCEPTION_HANDLER': 'core.exceptions.api_exception_handler', ...}
"""
import logging
import math

from rest_framework.exceptions import Throttled
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = '請求過於頻繁，請稍後再試。'


def api_exception_handler(exc, context):
    """
    Delegate to DRF, then reshape throttling responses into
    ``{'error': 'rate_limited', 'message': ..., 'retry_after': seconds}``.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, Throttled):
        retry_after = int(math.ceil(exc.wait)) if exc.wait is not None else None
        request = context.get('request')
        logger.info(
            "Rate limited %s %s (retry after %ss)",
            getattr(request, 'method', '-'),
            getattr(request, 'path', '-'),
            retry_after,
        )
        response.data = {
            'error': 'rate_limited',
            'message': RATE_LIMITED_MESSAGE,
            'retry_after': retry_after,
        }

    return response
