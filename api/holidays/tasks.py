"""
Holiday Tasks
=============
Monthly refresh of the holiday calendar.
"""

import logging
from celery import shared_task
from django.utils import timezone

from .services.cache_service import HolidayCacheService

logger = logging.getLogger(__name__)


@shared_task(name='holidays.tasks.sync_holidays')
def sync_holidays(year: int = None):
    """
    Refresh one year, or the current and the next year when not given.

    Returns:
        dict: year -> {'synced': int, 'errors': list}
    """
    years = [year] if year else [timezone.localdate().year, timezone.localdate().year + 1]
    service = HolidayCacheService()
    results = {}
    for target in years:
        logger.info("Syncing holidays for %s", target)
        results[str(target)] = service.refresh_year(target)
    return results
