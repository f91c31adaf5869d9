"""
Weekly Report Tests

Tests cover:
1. Hour totals and the replace-all item sync
2. Weekly report policies (hierarchy match, locked reports)
3. ISO week helpers
4. The weekly report API (create, duplicate redirect, workflow transitions)
5. Reminder and digest jobs
6. Summary and CSV/XLSX export
"""
import io
from datetime import date
from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from openpyxl import load_workbook
from rest_framework import status
from rest_framework.test import APITestCase

from core.models import AuditLog, Company, CompanySetting, CompanyStatus, Notification, NotificationKind
from organization.models import Division, Department, Team
from users.models import User, Role
from . import policies, weeks
from .models import WeeklyReport, WeeklyReportItem, ReportStatus, ItemType
from .services import jobs, workflow
from .services.export_service import WeeklyReportExportService, HEADERS

PASSWORD = 'S3cure-Passw0rd!'


class AcmeFixtureMixin:
    """Active, onboarded ``acme`` company with one branch of the hierarchy"""

    @classmethod
    def setUpTestData(cls):
        cls.company = Company.objects.create(
            name='Acme', slug='acme', status=CompanyStatus.ACTIVE, onboarded_at=timezone.now()
        )
        CompanySetting.objects.create(company=cls.company)

        cls.division = Division.objects.create(company=cls.company, name='Engineering', slug='engineering')
        cls.department = Department.objects.create(
            company=cls.company, name='Platform', slug='platform', division=cls.division
        )
        cls.team = Team.objects.create(
            company=cls.company, name='Core', slug='core', division=cls.division, department=cls.department
        )
        cls.other_team = Team.objects.create(
            company=cls.company, name='Mobile', slug='mobile', division=cls.division, department=cls.department
        )

        cls.admin = cls.make_user('admin@acme.test', Role.COMPANY_ADMIN)
        cls.division_lead = cls.make_user('division@acme.test', Role.DIVISION_LEAD, division=cls.division)
        cls.department_manager = cls.make_user(
            'department@acme.test', Role.DEPARTMENT_MANAGER, division=cls.division, department=cls.department
        )
        cls.team_lead = cls.make_user('lead@acme.test', Role.TEAM_LEAD, team=cls.team)
        cls.member = cls.make_user('bob@acme.test', Role.MEMBER, team=cls.team)
        cls.other_member = cls.make_user('carol@acme.test', Role.MEMBER, team=cls.other_team)

    @classmethod
    def make_user(cls, email, role, company=None, division=None, department=None, team=None):
        if team is not None:
            division = division or team.division
            department = department or team.department
        return User.objects.create_user(
            email=email,
            password=PASSWORD,
            full_name=email.split('@')[0].title(),
            company=company or cls.company,
            role=role,
            division=division,
            department=department,
            team=team,
        )

    def make_report(self, user, work_year=2026, work_week=5, status_value=ReportStatus.DRAFT, items=None):
        report = WeeklyReport.objects.create(
            company=user.company,
            user=user,
            division_id=user.division_id,
            department_id=user.department_id,
            team_id=user.team_id,
            work_year=work_year,
            work_week=work_week,
            status=status_value,
        )
        if items:
            workflow.sync_items(report, items.get('current_week'), items.get('next_week'))
        return report


class WeeklyReportModelTests(AcmeFixtureMixin, TestCase):
    """Test hour totals and item synchronization"""

    def test_total_hours_excludes_next_week_items(self):
        """Test next_week planned hours never count towards the total"""
        report = self.make_report(self.member, items={
            'current_week': [{'title': 'Ship release', 'hours_spent': Decimal('6'), 'is_billable': True}],
            'next_week': [{'title': 'Plan sprint', 'planned_hours': Decimal('10')}],
        })

        self.assertEqual(report.total_hours(), Decimal('6'))
        self.assertEqual(report.billable_hours(), Decimal('6'))
        self.assertEqual(report.planned_hours(), Decimal('10'))

    def test_sync_replaces_every_item(self):
        """Test saving [A, B] then [C] leaves only C"""
        report = self.make_report(self.member, items={
            'current_week': [{'title': 'A'}, {'title': 'B'}],
        })
        self.assertEqual(report.items.count(), 2)

        workflow.sync_items(report, [{'title': 'C', 'hours_spent': Decimal('2')}], [])

        titles = list(WeeklyReportItem.objects.filter(weekly_report=report).values_list('title', flat=True))
        self.assertEqual(titles, ['C'])

    def test_items_are_ordered_within_type(self):
        """Test sort_order follows payload order for each item type"""
        report = self.make_report(self.member, items={
            'current_week': [{'title': 'First'}, {'title': 'Second'}],
            'next_week': [{'title': 'Later'}],
        })

        self.assertEqual([item.title for item in report.current_week_items()], ['First', 'Second'])
        self.assertEqual([item.sort_order for item in report.current_week_items()], [0, 1])
        self.assertEqual([item.type for item in report.next_week_items()], [ItemType.NEXT_WEEK])

    def test_next_week_items_drop_hours_and_billable(self):
        """Test next_week items keep only planned hours"""
        report = self.make_report(self.member, items={
            'next_week': [{'title': 'Plan', 'hours_spent': Decimal('3'), 'is_billable': True,
                           'planned_hours': Decimal('4')}],
        })
        item = report.next_week_items()[0]

        self.assertEqual(item.hours_spent, Decimal('0'))
        self.assertFalse(item.is_billable)
        self.assertEqual(item.planned_hours, Decimal('4'))


class WeeklyReportPolicyTests(AcmeFixtureMixin, TestCase):
    """Test weekly report authorization rules"""

    def test_team_lead_updates_only_matching_team(self):
        """Test a team lead can update reports of their team only"""
        own_team = self.make_report(self.member, status_value=ReportStatus.SUBMITTED)
        other_team = self.make_report(self.other_member, status_value=ReportStatus.SUBMITTED)

        self.assertTrue(policies.update(self.team_lead, own_team))
        self.assertFalse(policies.update(self.team_lead, other_team))

    def test_author_edits_only_while_draft(self):
        """Test the author loses edit rights once the report is submitted"""
        report = self.make_report(self.member)
        self.assertTrue(policies.update(self.member, report))
        self.assertTrue(policies.delete(self.member, report))

        report.status = ReportStatus.SUBMITTED
        self.assertFalse(policies.update(self.member, report))
        self.assertFalse(policies.reopen(self.member, report))
        self.assertTrue(policies.view(self.member, report))

    def test_locked_report_cannot_be_updated_by_anyone(self):
        """Test no role can update, submit, reopen or delete a locked report"""
        report = self.make_report(self.member, status_value=ReportStatus.LOCKED)

        for user in (self.member, self.team_lead, self.department_manager, self.division_lead, self.admin):
            self.assertFalse(policies.update(user, report))
            self.assertFalse(policies.submit(user, report))
            self.assertFalse(policies.reopen(user, report))
            self.assertFalse(policies.delete(user, report))

    def test_reopen_requires_submitted_report(self):
        """Test reopen is refused for drafts"""
        report = self.make_report(self.member)
        self.assertFalse(policies.reopen(self.admin, report))

        report.status = ReportStatus.SUBMITTED
        self.assertTrue(policies.reopen(self.admin, report))
        self.assertTrue(policies.reopen(self.team_lead, report))

    def test_cross_tenant_access_denied(self):
        """Test an admin of another company cannot see the report"""
        other = Company.objects.create(name='Globex', slug='globex', status=CompanyStatus.ACTIVE)
        outsider = self.make_user('admin@globex.test', Role.COMPANY_ADMIN, company=other)
        report = self.make_report(self.member)

        self.assertFalse(policies.view(outsider, report))
        self.assertFalse(policies.update(outsider, report))

    def test_export_rules(self):
        """Test bulk export is open to leads while a specific report needs a match"""
        report = self.make_report(self.other_member)

        self.assertTrue(policies.export(self.admin))
        self.assertTrue(policies.export(self.team_lead))
        self.assertFalse(policies.export(self.member))
        self.assertFalse(policies.export(self.team_lead, report))
        self.assertTrue(policies.export(self.department_manager, report))


class WeekHelperTests(TestCase):
    """Test ISO week helpers"""

    def test_monday_and_range(self):
        """Test the date range runs Monday to Sunday"""
        self.assertEqual(weeks.monday_of(2026, 5), date(2026, 1, 26))
        self.assertEqual(
            weeks.week_date_range(2026, 5),
            {'start_date': '2026-01-26', 'end_date': '2026-02-01'}
        )

    def test_previous_week_crosses_year(self):
        """Test week 1 steps back into the last ISO week of the previous year"""
        self.assertEqual(weeks.previous_week(2026, 1), (2025, 52))
        self.assertEqual(weeks.previous_week(2021, 1), (2020, 53))

    def test_resolve_week_clamps(self):
        """Test out-of-range values are clamped"""
        self.assertEqual(weeks.resolve_week(1999, 0), (2000, 1))
        self.assertEqual(weeks.resolve_week(2200, 60), (2100, 52))

    def test_resolve_week_respects_year_length(self):
        """Test week 53 only exists in long ISO years"""
        self.assertEqual(weeks.weeks_in_year(2025), 52)
        self.assertEqual(weeks.weeks_in_year(2026), 53)
        self.assertEqual(weeks.resolve_week(2025, 53), (2025, 52))
        self.assertEqual(weeks.resolve_week(2026, 53), (2026, 53))

    def test_resolve_week_ignores_garbage(self):
        """Test non-numeric values fall back to the current week"""
        self.assertEqual(weeks.resolve_week('abc', 'x'), weeks.current_week())

    def test_missing_weeks_newest_first(self):
        """Test gaps between the first report and today are listed newest first"""
        missing = weeks.missing_weeks([(2026, 1), (2026, 3)], until=(2026, 5))

        self.assertEqual([(row['year'], row['week']) for row in missing], [(2026, 5), (2026, 4), (2026, 2)])
        self.assertEqual(weeks.missing_weeks([], until=(2026, 5)), [])


class WeeklyReportApiTests(AcmeFixtureMixin, APITestCase):
    """Test the weekly report endpoints"""

    base_url = '/api/v1/acme/weekly-reports/'

    def setUp(self):
        self.client.force_authenticate(user=self.member)

    def detail_url(self, report, suffix=''):
        return f'{self.base_url}{report.pk}/{suffix}'

    def payload(self, **overrides):
        data = {
            'work_year': 2026,
            'work_week': 5,
            'summary': 'Busy week',
            'current_week': [
                {'title': 'Fix login', 'hours_spent': '6.5', 'is_billable': True, 'tags': [' api ', 'api', '']},
            ],
            'next_week': [
                {'title': 'Write docs', 'planned_hours': '4'},
            ],
        }
        data.update(overrides)
        return data

    def test_create_report(self):
        """Test creating a report snapshots the author's hierarchy"""
        response = self.client.post(self.base_url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['status'], ReportStatus.DRAFT)
        self.assertEqual(data['totals']['total_hours'], 6.5)
        self.assertEqual(data['current_week'][0]['tags'], ['api'])

        report = WeeklyReport.objects.get(pk=data['id'])
        self.assertEqual(report.team_id, self.team.pk)
        self.assertEqual(report.department_id, self.department.pk)
        self.assertEqual(AuditLog.objects.filter(event='created', auditable_id=report.pk).count(), 1)

    def test_duplicate_week_redirects_to_existing_report(self):
        """Test a second create for the same week answers 303 and creates nothing"""
        existing = self.make_report(self.member)

        response = self.client.post(self.base_url, self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_303_SEE_OTHER)
        self.assertEqual(response.data['message'], '當週週報已存在')
        self.assertTrue(response['Location'].endswith(self.detail_url(existing)))
        self.assertEqual(WeeklyReport.objects.filter(user=self.member).count(), 1)

    def test_template_redirects_when_week_exists(self):
        """Test the create template points to the existing report"""
        existing = self.make_report(self.member)

        response = self.client.get(f'{self.base_url}create/', {'work_year': 2026, 'work_week': 5})

        self.assertEqual(response.status_code, status.HTTP_303_SEE_OTHER)
        self.assertEqual(response.data['data']['id'], str(existing.pk))

    def test_template_prefills_from_previous_week(self):
        """Test last week's next_week plans become this week's suggestions"""
        self.make_report(self.member, work_week=4, items={
            'next_week': [{'title': 'Migrate database', 'planned_hours': Decimal('8'), 'tags': ['db']}],
        })

        response = self.client.get(f'{self.base_url}create/', {'work_year': 2026, 'work_week': 5})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        suggestion = response.data['data']['current_week'][0]
        self.assertEqual(suggestion['title'], 'Migrate database')
        self.assertEqual(suggestion['hours_spent'], 8.0)
        self.assertEqual(suggestion['tags'], ['db'])
        self.assertEqual(response.data['data']['holidays'], [])

    def test_validation_errors(self):
        """Test hour limits and date ordering are validated"""
        too_many_hours = self.payload(current_week=[{'title': 'Overtime', 'hours_spent': '201'}])
        response = self.client.post(self.base_url, too_many_hours, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        backwards = self.payload(current_week=[{
            'title': 'Travel', 'started_at': '2026-01-30', 'ended_at': '2026-01-28',
        }])
        response = self.client.post(self.base_url, backwards, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        bad_week = self.payload(work_week=54)
        response = self.client.post(self.base_url, bad_week, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_week_53_of_short_year_is_rejected(self):
        """Test week 53 of a 52-week year cannot alias week 1 of the next year"""
        response = self.client.post(self.base_url, self.payload(work_year=2026, work_week=1), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(self.base_url, self.payload(work_year=2025, work_week=53), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('work_week', response.data)
        self.assertEqual(WeeklyReport.objects.filter(user=self.member).count(), 1)

    def test_week_53_of_long_year_is_accepted(self):
        """Test week 53 is valid in a 53-week year"""
        response = self.client.post(self.base_url, self.payload(work_year=2026, work_week=53), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_template_falls_back_on_unreadable_week(self):
        """Test non-numeric query values open the current week instead of failing"""
        response = self.client.get(f'{self.base_url}create/', {'work_year': 'abc', 'work_week': 'x'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        year, week = weeks.current_week(self.company.timezone)
        self.assertEqual((response.data['data']['work_year'], response.data['data']['work_week']), (year, week))

    def test_template_clamps_week_to_year_length(self):
        """Test the template for week 53 of a 52-week year opens its last week"""
        response = self.client.get(f'{self.base_url}create/', {'work_year': 2025, 'work_week': 53})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['work_week'], 52)

    def test_update_replaces_items(self):
        """Test PUT replaces the full item set"""
        report = self.make_report(self.member, items={'current_week': [{'title': 'A'}, {'title': 'B'}]})

        response = self.client.put(
            self.detail_url(report),
            {'summary': 'Updated', 'current_week': [{'title': 'C', 'hours_spent': '3'}]},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['title'] for item in response.data['data']['current_week']], ['C'])
        self.assertEqual(report.items.count(), 1)

    def test_list_returns_only_own_reports(self):
        """Test the list is limited to the caller's reports"""
        self.make_report(self.member, work_week=3)
        self.make_report(self.other_member, work_week=3)

        response = self.client.get(self.base_url, {'filter_year': '2026'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['available_years'], [2026])
        self.assertIn('missing_weeks', response.data)

    def test_submit_notifies_managers(self):
        """Test submitting notifies the admin and the matching leads"""
        report = self.make_report(self.member)

        response = self.client.post(self.detail_url(report, 'submit/'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        report.refresh_from_db()
        self.assertEqual(report.status, ReportStatus.SUBMITTED)
        self.assertEqual(report.submitted_by, self.member)
        notified = set(
            Notification.objects.filter(kind=NotificationKind.WEEKLY_REPORT_SUBMITTED)
            .values_list('user__email', flat=True)
        )
        self.assertEqual(notified, {
            'admin@acme.test', 'division@acme.test', 'department@acme.test', 'lead@acme.test'
        })
        self.assertEqual(AuditLog.objects.filter(event='submitted', auditable_id=report.pk).count(), 1)

    def test_submission_notice_can_be_disabled(self):
        """Test managers are not notified when the preference is off"""
        CompanySetting.objects.filter(company=self.company).update(
            notification_preferences={'submission_notice_enabled': False}
        )
        report = self.make_report(self.member)

        self.client.post(self.detail_url(report, 'submit/'))

        self.assertFalse(Notification.objects.filter(kind=NotificationKind.WEEKLY_REPORT_SUBMITTED).exists())

    def test_author_cannot_resubmit_or_reopen(self):
        """Test the author has no transitions once the report is submitted"""
        report = self.make_report(self.member, status_value=ReportStatus.SUBMITTED)

        self.assertEqual(self.client.post(self.detail_url(report, 'submit/')).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.post(self.detail_url(report, 'reopen/')).status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_submit_of_submitted_report_is_rejected(self):
        """Test only drafts can be submitted"""
        report = self.make_report(self.member, status_value=ReportStatus.SUBMITTED)
        self.client.force_authenticate(user=self.team_lead)

        response = self.client.post(self.detail_url(report, 'submit/'))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reopen_draft_answers_info_message(self):
        """Test reopening a draft changes nothing"""
        report = self.make_report(self.member)

        response = self.client.post(self.detail_url(report, 'reopen/'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], '此週報已是草稿狀態。')

    def test_team_lead_reopens_and_locks(self):
        """Test the workflow submitted -> draft -> submitted -> locked"""
        report = self.make_report(self.member, status_value=ReportStatus.SUBMITTED)
        self.client.force_authenticate(user=self.team_lead)

        response = self.client.post(self.detail_url(report, 'reopen/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        report.refresh_from_db()
        self.assertEqual(report.status, ReportStatus.DRAFT)
        self.assertIsNone(report.submitted_at)
        self.assertEqual(AuditLog.objects.filter(event='reopened', auditable_id=report.pk).count(), 1)

        report.status = ReportStatus.SUBMITTED
        report.save(update_fields=['status'])
        response = self.client.post(self.detail_url(report, 'lock/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        report.refresh_from_db()
        self.assertEqual(report.status, ReportStatus.LOCKED)
        self.assertEqual(report.approved_by, self.team_lead)
        self.assertIsNotNone(report.locked_at)

    def test_locked_report_rejects_update_and_delete(self):
        """Test even an admin cannot change a locked report"""
        report = self.make_report(self.member, status_value=ReportStatus.LOCKED)
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(self.detail_url(report), {'summary': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(self.detail_url(report))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_team_lead_cannot_view(self):
        """Test a team lead of another team gets 403"""
        report = self.make_report(self.other_member)
        self.client.force_authenticate(user=self.team_lead)

        response = self.client.get(self.detail_url(report))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_draft(self):
        """Test the author deletes a draft"""
        report = self.make_report(self.member)

        response = self.client.delete(self.detail_url(report))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(WeeklyReport.objects.filter(pk=report.pk).exists())
        self.assertEqual(AuditLog.objects.filter(event='deleted', auditable_id=report.pk).count(), 1)

    def test_suspended_company_is_locked(self):
        """Test requests to a suspended tenant answer 423"""
        Company.objects.filter(pk=self.company.pk).update(status=CompanyStatus.SUSPENDED)

        response = self.client.get(self.base_url)

        self.assertEqual(response.status_code, 423)


class WeeklyReportJobTests(AcmeFixtureMixin, TestCase):
    """Test the reminder and digest jobs"""

    def count(self, kind, user=None):
        notifications = Notification.objects.filter(kind=kind)
        if user is not None:
            notifications = notifications.filter(user=user)
        return notifications.count()

    def test_reminder_targets_members_without_submission(self):
        """Test bob is reminded once and a member who submitted is not"""
        self.make_report(self.other_member, status_value=ReportStatus.SUBMITTED)
        self.make_report(self.member, status_value=ReportStatus.DRAFT)

        jobs.send_weekly_report_reminders(2026, 5)

        self.assertEqual(self.count(NotificationKind.WEEKLY_REPORT_REMINDER, self.member), 1)
        self.assertEqual(self.count(NotificationKind.WEEKLY_REPORT_REMINDER, self.other_member), 0)

    def test_reminder_skips_disabled_and_not_onboarded_companies(self):
        """Test preferences and onboarding gate the reminder"""
        pending = Company.objects.create(name='Pending', slug='pending', status=CompanyStatus.ONBOARDING)
        self.make_user('new@pending.test', Role.MEMBER, company=pending)
        CompanySetting.objects.filter(company=self.company).update(
            notification_preferences={'weekly_reminder_enabled': False}
        )

        sent = jobs.send_weekly_report_reminders(2026, 5)

        self.assertEqual(sent, 0)
        self.assertEqual(self.count(NotificationKind.WEEKLY_REPORT_REMINDER), 0)

    def test_digest_skips_week_without_reports(self):
        """Test a company without reports gets no digest"""
        sent = jobs.send_weekly_summary_digest(2026, 5)

        self.assertEqual(sent, 0)
        self.assertEqual(self.count(NotificationKind.WEEKLY_SUMMARY_DIGEST), 0)

    def test_digest_sends_one_per_manager(self):
        """Test every digest role receives exactly one digest"""
        self.make_report(self.member, status_value=ReportStatus.SUBMITTED, items={
            'current_week': [{'title': 'Work', 'hours_spent': Decimal('5'), 'is_billable': True}],
        })
        self.make_report(self.other_member, items={'current_week': [{'title': 'Work', 'hours_spent': Decimal('3')}]})

        sent = jobs.send_weekly_summary_digest(2026, 5)

        self.assertEqual(sent, 3)
        for manager in (self.admin, self.division_lead, self.department_manager):
            self.assertEqual(self.count(NotificationKind.WEEKLY_SUMMARY_DIGEST, manager), 1)
        self.assertEqual(self.count(NotificationKind.WEEKLY_SUMMARY_DIGEST, self.team_lead), 0)

        digest = Notification.objects.filter(kind=NotificationKind.WEEKLY_SUMMARY_DIGEST).first()
        self.assertEqual(digest.data['summary']['total_hours'], 8.0)
        self.assertEqual(digest.data['summary']['billable_hours'], 5.0)
        self.assertEqual(digest.data['summary']['submitted_count'], 1)
        self.assertEqual(digest.data['summary']['draft_count'], 1)
        self.assertEqual(digest.data['summary']['member_count'], 2)

    def test_digest_command_accepts_week(self):
        """Test the management command parses YYYY-WW"""
        self.make_report(self.member)
        out = io.StringIO()

        call_command('send_weekly_summary_digest', '--week', '2026-05', stdout=out)

        self.assertIn('Sent 3 digests.', out.getvalue())


class WeeklyReportExportTests(AcmeFixtureMixin, APITestCase):
    """Test the summary view and the CSV/XLSX downloads"""

    summary_url = '/api/v1/acme/weekly-reports/summary/'

    def setUp(self):
        self.make_report(self.member, items={
            'current_week': [{'title': 'Fix login', 'hours_spent': Decimal('6'), 'tags': ['api', 'auth']}],
            'next_week': [{'title': 'Write docs', 'planned_hours': Decimal('4')}],
        })
        self.make_report(self.other_member)

    def test_rows_flatten_items(self):
        """Test one row per item and one padded row for an empty report"""
        rows = WeeklyReportExportService(self.company, self.admin, {'year': 2026}).rows()

        self.assertEqual(len(rows), 3)
        self.assertTrue(all(len(row) == len(HEADERS) for row in rows))
        first = next(row for row in rows if row[8] == 'Fix login')
        self.assertEqual(first[14], 'api, auth')
        self.assertEqual(first[15], '本週工作')
        empty = next(row for row in rows if row[1] == 'carol@acme.test')
        self.assertEqual(empty[8:], [''] * (len(HEADERS) - 8))

    def test_team_lead_summary_is_restricted(self):
        """Test a team lead only sees their own team"""
        self.client.force_authenticate(user=self.team_lead)

        response = self.client.get(self.summary_url, {'year': 2026})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['report_count'], 1)
        self.assertEqual(response.data['data']['total_hours'], 6.0)

    def test_member_cannot_export(self):
        """Test plain members get 403"""
        self.client.force_authenticate(user=self.member)

        response = self.client.get(self.summary_url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_csv_export(self):
        """Test the CSV download has a BOM, the header row and an audit entry"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(self.summary_url, {'year': 2026, 'export': 'csv'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('attachment; filename="acme-all-2026-', response['Content-Disposition'])
        text = response.content.decode('utf-8')
        self.assertTrue(text.startswith('\ufeff成員,信箱'))
        self.assertEqual(AuditLog.objects.filter(event='exported', company=self.company).count(), 1)

    def test_xlsx_export(self):
        """Test the XLSX download opens with openpyxl"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.get(
            self.summary_url, {'year': 2026, 'week': 5, 'team_id': str(self.team.pk), 'export': 'xlsx'}
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('acme-team-202605-', response['Content-Disposition'])
        sheet = load_workbook(io.BytesIO(response.content)).active
        self.assertEqual(sheet['A1'].value, '成員')
        self.assertEqual(sheet.max_row, 3)
