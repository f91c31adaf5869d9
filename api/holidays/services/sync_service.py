"""
Holiday Sync Service
====================
Pulls the New Taipei City open-data holiday calendar (CSV, paginated with
``page``/``size``) and upserts it by date.

A failed page stops pagination; rows fetched before the failure are still
saved and the failure is reported in ``errors`` instead of being raised.
"""

import csv
import io
import logging
from datetime import datetime
from typing import Dict, List, Optional

import requests
from django.conf import settings
from django.db import transaction

from ..models import Holiday, HolidayCategory, HolidaySource

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_URL = 'https://data.ntpc.gov.tw/api/datasets/308dcd75-6434-45bc-a95f-584da4fed251/csv'

CSV_FIELDS = ['date', 'year', 'name', 'isholiday', 'holidaycategory', 'description']

MAKEUP_WORKDAY_MARK = '補行上班'


def classify(category_text: str, is_holiday: bool) -> str:
    """Map the dataset's free-text category to a HolidayCategory value"""
    category_text = category_text or ''
    if MAKEUP_WORKDAY_MARK in category_text:
        return HolidayCategory.MAKEUP_WORKDAY
    if '國定假日' in category_text or '放假' in category_text:
        return HolidayCategory.NATIONAL
    if '星期' in category_text:
        return HolidayCategory.WEEKEND if is_holiday else HolidayCategory.WEEKDAY_OFF
    return HolidayCategory.NATIONAL if is_holiday else HolidayCategory.WEEKDAY_OFF


def parse_csv(text: str) -> List[Dict[str, str]]:
    """Rows of the CSV page keyed by the dataset columns; rows without a date are dropped"""
    text = (text or '').lstrip('\ufeff').strip()
    if not text:
        return []

    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for raw in reader:
        row = {field: (raw.get(field) or '').strip() for field in CSV_FIELDS}
        if row['date']:
            rows.append(row)
    return rows


def transform(row: Dict[str, str]) -> Optional[Dict]:
    """Model field values for one CSV row, or None when the date is unreadable"""
    try:
        holiday_date = datetime.strptime(row['date'], '%Y%m%d').date()
    except ValueError:
        return None

    is_holiday = row.get('isholiday') == '是'
    category_text = row.get('holidaycategory') or ''
    iso_year, iso_week, _ = holiday_date.isocalendar()
    return {
        'holiday_date': holiday_date,
        'name': row.get('name') or None,
        'is_holiday': is_holiday,
        'category': classify(category_text, is_holiday),
        'note': row.get('description') or None,
        'source': HolidaySource.NTPC,
        'is_workday_override': MAKEUP_WORKDAY_MARK in category_text,
        'iso_week': iso_week,
        'iso_week_year': iso_year,
    }


class HolidaySyncService:
    """
    Fetch, transform and upsert holidays.

    Usage:
        result = HolidaySyncService().sync(2026)
        # {'synced': 120, 'errors': []}
    """

    def __init__(self, source_url: str = None, page_size: int = None, timeout: int = None):
        self.source_url = source_url or getattr(settings, 'HOLIDAY_SOURCE_URL', DEFAULT_SOURCE_URL)
        self.page_size = page_size or getattr(settings, 'HOLIDAY_PAGE_SIZE', 400)
        self.timeout = timeout or getattr(settings, 'HOLIDAY_TIMEOUT', 30)

    def fetch_page(self, page: int) -> List[Dict[str, str]]:
        response = requests.get(
            self.source_url,
            params={'page': page, 'size': self.page_size},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return parse_csv(response.content.decode('utf-8-sig'))

    def fetch(self, year: Optional[int] = None):
        """All rows (optionally of one year) plus the errors met on the way"""
        rows, errors = [], []
        page = 0
        while True:
            try:
                parsed = self.fetch_page(page)
            except (requests.RequestException, csv.Error, ValueError) as exc:
                message = f"API request failed on page {page}: {exc}"
                logger.error("Holiday sync page %d failed: %s", page, exc)
                errors.append(message)
                break

            if not parsed:
                break

            if year is not None:
                rows.extend(row for row in parsed if row['year'] == str(year))
            else:
                rows.extend(parsed)

            if len(parsed) < self.page_size:
                break
            page += 1

        return rows, errors

    def upsert(self, values: List[Dict]) -> int:
        with transaction.atomic():
            for value in values:
                defaults = {key: item for key, item in value.items() if key != 'holiday_date'}
                Holiday.objects.update_or_create(holiday_date=value['holiday_date'], defaults=defaults)
        return len(values)

    def sync(self, year: Optional[int] = None) -> Dict:
        rows, errors = self.fetch(year)

        # later rows win when a date appears twice
        by_date = {}
        for row in rows:
            value = transform(row)
            if value is None:
                errors.append(f"Invalid date: {row['date']}")
                continue
            by_date[value['holiday_date']] = value

        synced = self.upsert(list(by_date.values())) if by_date else 0
        logger.info("Holiday sync finished (year=%s): %d synced, %d errors", year or 'all', synced, len(errors))
        return {'synced': synced, 'errors': errors}
