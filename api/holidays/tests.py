"""
Holiday Tests

Tests cover:
1. Category classification and CSV parsing
2. Sync pagination, upsert by date and partial failure
3. The year cache and its anchor-date check
4. The holiday endpoints
"""
from datetime import date
from unittest import mock

import requests
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from core.models import Company, CompanySetting, CompanyStatus
from users.models import User, Role
from .models import Holiday, HolidayCategory
from .services.cache_service import HolidayCacheService
from .services.sync_service import HolidaySyncService, classify, parse_csv

CSV_HEADER = 'date,year,name,isholiday,holidaycategory,description\n'


def csv_page(*rows):
    return CSV_HEADER + ''.join(f'{row}\n' for row in rows)


def fake_response(text, status_code=200):
    response = mock.Mock()
    response.status_code = status_code
    response.content = text.encode('utf-8')
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f'{status_code} Server Error')
    else:
        response.raise_for_status.return_value = None
    return response


ANCHOR_ROWS = [
    '20260101,2026,開國紀念日,是,放假之紀念日及節日,全國各機關學校放假一日。',
    '20260228,2026,和平紀念日,是,放假之紀念日及節日,',
    '20261010,2026,國慶日,是,放假之紀念日及節日,',
]


class ClassificationTests(TestCase):
    """Test category mapping and parsing"""

    def test_classify(self):
        """Test the Chinese category text maps to the four categories"""
        self.assertEqual(classify('補行上班日', False), HolidayCategory.MAKEUP_WORKDAY)
        self.assertEqual(classify('放假之紀念日及節日', True), HolidayCategory.NATIONAL)
        self.assertEqual(classify('星期六、星期日', True), HolidayCategory.WEEKEND)
        self.assertEqual(classify('星期一', False), HolidayCategory.WEEKDAY_OFF)
        self.assertEqual(classify('特定節日', True), HolidayCategory.NATIONAL)
        self.assertEqual(classify('', False), HolidayCategory.WEEKDAY_OFF)

    def test_parse_csv_skips_rows_without_date(self):
        """Test empty lines and rows without a date are dropped"""
        rows = parse_csv('\ufeff' + csv_page(ANCHOR_ROWS[0], ',2026,Nameless,否,,', ''))

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['name'], '開國紀念日')
        self.assertEqual(rows[0]['isholiday'], '是')


class HolidaySyncTests(TestCase):
    """Test the open-data sync"""

    def setUp(self):
        self.service = HolidaySyncService(source_url='https://example.test/holidays.csv', page_size=2)

    @mock.patch('holidays.services.sync_service.requests.get')
    def test_sync_paginates_and_transforms(self, mock_get):
        """Test every page is read until a short page"""
        mock_get.side_effect = [
            fake_response(csv_page(ANCHOR_ROWS[0], '20260103,2026,,是,星期六、星期日,')),
            fake_response(csv_page('20260207,2026,補行上班,否,補行上班日,')),
        ]

        result = self.service.sync(2026)

        self.assertEqual(result, {'synced': 3, 'errors': []})
        self.assertEqual(mock_get.call_count, 2)
        self.assertEqual(mock_get.call_args_list[1].kwargs['params'], {'page': 1, 'size': 2})

        new_year = Holiday.objects.get(holiday_date=date(2026, 1, 1))
        self.assertEqual(new_year.category, HolidayCategory.NATIONAL)
        self.assertEqual((new_year.iso_week_year, new_year.iso_week), (2026, 1))
        makeup = Holiday.objects.get(holiday_date=date(2026, 2, 7))
        self.assertTrue(makeup.is_workday_override)
        self.assertFalse(makeup.is_holiday)
        self.assertEqual(Holiday.objects.get(holiday_date=date(2026, 1, 3)).category, HolidayCategory.WEEKEND)

    @mock.patch('holidays.services.sync_service.requests.get')
    def test_sync_same_date_twice_keeps_one_row(self, mock_get):
        """Test a second sync updates the row instead of duplicating it"""
        mock_get.return_value = fake_response(csv_page('20260101,2026,元旦,是,放假之紀念日及節日,'))
        self.service.sync(2026)

        mock_get.return_value = fake_response(csv_page('20260101,2026,開國紀念日,是,放假之紀念日及節日,'))
        self.service.sync(2026)

        self.assertEqual(Holiday.objects.filter(holiday_date=date(2026, 1, 1)).count(), 1)
        self.assertEqual(Holiday.objects.get(holiday_date=date(2026, 1, 1)).name, '開國紀念日')

    @mock.patch('holidays.services.sync_service.requests.get')
    def test_failed_page_keeps_earlier_rows(self, mock_get):
        """Test a failing page stops the sync but saves what was fetched"""
        mock_get.side_effect = [
            fake_response(csv_page(*ANCHOR_ROWS[:2])),
            fake_response('', status_code=500),
        ]

        result = self.service.sync(2026)

        self.assertEqual(result['synced'], 2)
        self.assertEqual(len(result['errors']), 1)
        self.assertIn('page 1', result['errors'][0])
        self.assertEqual(Holiday.objects.count(), 2)

    @mock.patch('holidays.services.sync_service.requests.get')
    def test_undecodable_page_keeps_earlier_rows(self, mock_get):
        """Test a page that is not UTF-8 is reported like a failed request"""
        broken = fake_response('')
        broken.content = b'\xff\xfe\xfa\xfb'
        mock_get.side_effect = [fake_response(csv_page(*ANCHOR_ROWS[:2])), broken]

        result = self.service.sync(2026)

        self.assertEqual(result['synced'], 2)
        self.assertEqual(len(result['errors']), 1)
        self.assertIn('API request failed on page 1', result['errors'][0])
        self.assertEqual(Holiday.objects.count(), 2)

    @mock.patch('holidays.services.sync_service.requests.get')
    def test_connection_error_is_reported(self, mock_get):
        """Test network errors are returned, not raised"""
        mock_get.side_effect = requests.ConnectionError('unreachable')

        result = self.service.sync(2026)

        self.assertEqual(result['synced'], 0)
        self.assertEqual(len(result['errors']), 1)

    @mock.patch('holidays.services.sync_service.requests.get')
    def test_year_filter(self, mock_get):
        """Test rows of other years are skipped when a year is given"""
        mock_get.return_value = fake_response(csv_page('20251231,2025,跨年,否,,', ANCHOR_ROWS[0]))
        service = HolidaySyncService(source_url='https://example.test/holidays.csv', page_size=400)

        result = service.sync(2026)

        self.assertEqual(result['synced'], 1)
        self.assertFalse(Holiday.objects.filter(holiday_date=date(2025, 12, 31)).exists())


class HolidayCacheTests(TestCase):
    """Test the year cache"""

    def setUp(self):
        cache.clear()
        self.sync_service = mock.Mock(spec=HolidaySyncService)
        self.sync_service.sync.return_value = {'synced': 0, 'errors': []}
        self.service = HolidayCacheService(sync_service=self.sync_service)

    def add_holiday(self, day, name='Holiday'):
        iso_year, iso_week, _ = day.isocalendar()
        return Holiday.objects.create(
            holiday_date=day, name=name, category=HolidayCategory.NATIONAL,
            iso_week=iso_week, iso_week_year=iso_year,
        )

    def add_anchors(self, year):
        for month, day in HolidayCacheService.ANCHOR_DATES:
            self.add_holiday(date(year, month, day))

    def test_complete_year_is_not_synced(self):
        """Test a year with its anchor holidays is served without syncing"""
        self.add_anchors(2026)

        self.service.ensure_year_loaded(2026)
        holidays = self.service.get_holidays(2026)

        self.sync_service.sync.assert_not_called()
        self.assertEqual(len(holidays), 3)

    def test_missing_anchor_triggers_sync(self):
        """Test a year without Oct 10 is synced again"""
        self.add_holiday(date(2026, 1, 1))
        self.add_holiday(date(2026, 2, 28))

        self.service.ensure_year_loaded(2026)

        self.sync_service.sync.assert_called_once_with(2026)

    def test_week_lookup(self):
        """Test holidays are looked up by ISO week"""
        self.add_anchors(2026)

        holidays = self.service.get_holidays_for_week(2026, 9)

        self.assertEqual([row['holiday_date'] for row in holidays], [date(2026, 2, 28)])

    def test_cached_year_skips_database(self):
        """Test a cached year is answered from the cache"""
        self.add_anchors(2026)
        self.service.get_holidays(2026)
        Holiday.objects.all().delete()

        self.assertEqual(len(self.service.get_holidays(2026)), 3)


class HolidayApiTests(APITestCase):
    """Test the holiday endpoints"""

    @classmethod
    def setUpTestData(cls):
        cls.company = Company.objects.create(
            name='Acme', slug='acme', status=CompanyStatus.ACTIVE, onboarded_at=timezone.now()
        )
        CompanySetting.objects.create(company=cls.company)
        cls.user = User.objects.create_user(
            email='bob@acme.test', password='S3cure-Passw0rd!', full_name='Bob',
            company=cls.company, role=Role.MEMBER,
        )
        for day, name in ((date(2026, 1, 1), '開國紀念日'), (date(2026, 2, 28), '和平紀念日'),
                          (date(2026, 10, 10), '國慶日')):
            iso_year, iso_week, _ = day.isocalendar()
            Holiday.objects.create(
                holiday_date=day, name=name, category=HolidayCategory.NATIONAL,
                iso_week=iso_week, iso_week_year=iso_year,
            )

    def setUp(self):
        cache.clear()
        self.client.force_authenticate(user=self.user)

    def test_year_out_of_range(self):
        """Test years outside 2020-2030 answer 400"""
        response = self.client.get('/api/v1/acme/holidays/', {'year': 2019})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_year(self):
        """Test the year list is served from storage"""
        response = self.client.get('/api/v1/acme/holidays/', {'year': 2026})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['year'], 2026)
        self.assertEqual([row['date'] for row in response.data['data']], ['2026-01-01', '2026-02-28', '2026-10-10'])

    def test_week_out_of_range(self):
        """Test weeks outside 1-53 answer 400"""
        response = self.client.get('/api/v1/acme/holidays/week/', {'year': 2026, 'week': 54})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_week(self):
        """Test the week endpoint returns that week's holidays"""
        response = self.client.get('/api/v1/acme/holidays/week/', {'year': 2026, 'week': 41})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'][0]['name'], '國慶日')

    def test_requires_authentication(self):
        """Test anonymous callers are rejected"""
        self.client.force_authenticate(user=None)

        response = self.client.get('/api/v1/acme/holidays/', {'year': 2026})

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
