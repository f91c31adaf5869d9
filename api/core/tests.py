"""
Notification Tests

Tests cover:
1. In-app notification creation with its email delivery log
2. The notification endpoints (list, mark read, unread count)
"""
from django.core import mail
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from core.models import Company, CompanySetting, CompanyStatus, Notification, NotificationLog, NotificationKind
from core.models_notifications import DeliveryChannel, DeliveryStatus
from core.services.notification_service import NotificationService
from users.models import User, Role

PASSWORD = 'S3cure-Passw0rd!'


class NotificationFixtureMixin:

    @classmethod
    def setUpTestData(cls):
        cls.company = Company.objects.create(
            name='Acme', slug='acme', status=CompanyStatus.ACTIVE, onboarded_at=timezone.now()
        )
        CompanySetting.objects.create(company=cls.company)
        cls.user = User.objects.create_user(
            email='bob@acme.test', password=PASSWORD, full_name='Bob',
            company=cls.company, role=Role.MEMBER,
        )
        cls.other_user = User.objects.create_user(
            email='carol@acme.test', password=PASSWORD, full_name='Carol',
            company=cls.company, role=Role.MEMBER,
        )

    def notify(self, user, title='Hello', send_email=False):
        return NotificationService.create_notification(
            user=user, company=self.company, kind=NotificationKind.WEEKLY_REPORT_REMINDER,
            title=title, message='Please submit', send_email=send_email,
        )


class NotificationServiceTests(NotificationFixtureMixin, TestCase):
    """Test notification delivery"""

    def test_in_app_only(self):
        """Test a notification without email logs a single in-app delivery"""
        notification = self.notify(self.user)

        logs = NotificationLog.objects.filter(notification=notification)
        self.assertEqual(list(logs.values_list('channel', flat=True)), [DeliveryChannel.IN_APP])
        self.assertEqual(len(mail.outbox), 0)

    def test_email_delivery_logged(self):
        """Test the email channel is sent and logged as SENT"""
        notification = self.notify(self.user, title='[Acme] 週報提醒', send_email=True)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, '[Acme] 週報提醒')
        email_log = NotificationLog.objects.get(notification=notification, channel=DeliveryChannel.EMAIL)
        self.assertEqual(email_log.status, DeliveryStatus.SENT)
        self.assertIsNotNone(email_log.sent_at)

    def test_reminder_links_to_create_page(self):
        """Test the reminder points at the report creation page of the company"""
        notification = NotificationService.notify_weekly_report_reminder(self.user, self.company, 2024, 12)

        self.assertTrue(notification.action_url.endswith('/acme/weekly-reports/create'))
        self.assertEqual(notification.data['work_week'], 12)


class NotificationApiTests(NotificationFixtureMixin, APITestCase):
    """Test the notification endpoints"""

    def setUp(self):
        self.client.force_authenticate(user=self.user)

    def test_list_only_own(self):
        """Test only the caller's notifications are listed"""
        self.notify(self.user, title='Mine')
        self.notify(self.other_user, title='Theirs')

        response = self.client.get('/api/v1/notifications/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['title'] for row in response.data['results']], ['Mine'])
        self.assertEqual(response.data['results'][0]['company_slug'], 'acme')

    def test_mark_selected_read(self):
        """Test marking specific notifications as read"""
        first = self.notify(self.user, title='First')
        self.notify(self.user, title='Second')

        response = self.client.post(
            '/api/v1/notifications/mark-read/', {'notification_ids': [str(first.id)]}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['updated'], 1)
        first.refresh_from_db()
        self.assertTrue(first.is_read)

    def test_mark_all_read(self):
        """Test mark_all leaves other users' notifications untouched"""
        self.notify(self.user)
        self.notify(self.user)
        foreign = self.notify(self.other_user)

        response = self.client.post('/api/v1/notifications/mark-read/', {'mark_all': True}, format='json')

        self.assertEqual(response.data['data']['updated'], 2)
        foreign.refresh_from_db()
        self.assertFalse(foreign.is_read)

    def test_mark_read_requires_target(self):
        """Test an empty mark-read request is rejected"""
        response = self.client.post('/api/v1/notifications/mark-read/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unread_count(self):
        """Test the unread counter"""
        self.notify(self.user)
        read = self.notify(self.user)
        read.mark_as_read()

        response = self.client.get('/api/v1/notifications/unread-count/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['unread'], 1)

    def test_requires_authentication(self):
        """Test anonymous callers are rejected"""
        self.client.force_authenticate(user=None)

        response = self.client.get('/api/v1/notifications/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
