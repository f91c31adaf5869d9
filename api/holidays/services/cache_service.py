"""
Holiday Cache Service
=====================
Serves a year's holidays from Django's cache, falling back to the database
and finally to a sync from the open-data source.
"""

import logging
from typing import List

from django.conf import settings
from django.core.cache import cache

from ..models import Holiday
from .sync_service import HolidaySyncService

logger = logging.getLogger(__name__)


class HolidayCacheService:
    """
    Year-level holiday cache.

    A year counts as loaded once it holds the anchor national holidays
    (Jan 1, Feb 28, Oct 10); otherwise it is synced again.
    """

    PREFIX = 'holidays:'
    DEFAULT_TTL = 60 * 60 * 24

    # (month, day) that every complete year contains
    ANCHOR_DATES = [(1, 1), (2, 28), (10, 10)]

    def __init__(self, sync_service: HolidaySyncService = None):
        self.sync_service = sync_service or HolidaySyncService()
        self.ttl = getattr(settings, 'HOLIDAY_CACHE_TTL', self.DEFAULT_TTL)

    def _key(self, year: int) -> str:
        return f"{self.PREFIX}{year}"

    @staticmethod
    def _rows(queryset) -> List[dict]:
        return list(queryset.values(
            'holiday_date', 'name', 'is_holiday', 'category', 'note', 'is_workday_override',
            'iso_week', 'iso_week_year',
        ))

    def has_anchor_holidays(self, rows, year: int) -> bool:
        dates = {(row['holiday_date'].month, row['holiday_date'].day) for row in rows
                 if row['holiday_date'].year == year}
        return all(anchor in dates for anchor in self.ANCHOR_DATES)

    def ensure_year_loaded(self, year: int) -> None:
        if cache.get(self._key(year)) is not None:
            return

        rows = self._rows(Holiday.objects.for_year(year))
        if not rows or not self.has_anchor_holidays(rows, year):
            logger.info("Holidays for %s missing or incomplete; syncing", year)
            self.sync_service.sync(year)
            rows = self._rows(Holiday.objects.for_year(year))

        if rows:
            cache.set(self._key(year), rows, self.ttl)

    def get_holidays(self, year: int) -> List[dict]:
        rows = cache.get(self._key(year))
        if rows is not None:
            return rows

        rows = self._rows(Holiday.objects.for_year(year))
        if not rows:
            self.sync_service.sync(year)
            rows = self._rows(Holiday.objects.for_year(year))

        if rows:
            cache.set(self._key(year), rows, self.ttl)
        return rows

    def get_holidays_for_week(self, iso_year: int, iso_week: int) -> List[dict]:
        self.ensure_year_loaded(iso_year)
        return self._rows(Holiday.objects.for_iso_week(iso_year, iso_week))

    def clear_cache(self, year: int) -> None:
        cache.delete(self._key(year))

    def refresh_year(self, year: int) -> dict:
        """Drop the cached year, sync it again and re-cache it"""
        self.clear_cache(year)
        result = self.sync_service.sync(year)
        self.ensure_year_loaded(year)
        return result
