"""
Scheduled Weekly Report Jobs
============================
Reminder and digest batches run by Celery beat and the management commands.

Only onboarded companies are considered. Each job honours its company
notification preference, which defaults to enabled.
"""
import logging
from decimal import Decimal
from typing import Dict, Optional, Tuple

from django.db.models import Exists, OuterRef

from core.models import Company
from core.services.notification_service import NotificationService
from users.models import User, DIGEST_ROLES
from .. import weeks
from ..models import WeeklyReport, ReportStatus

logger = logging.getLogger(__name__)


def onboarded_companies():
    return Company.objects.filter(onboarded_at__isnull=False).select_related('settings').order_by('slug')


def users_missing_submission(company, work_year: int, work_week: int):
    """Members of ``company`` without a submitted report for the week"""
    submitted = WeeklyReport.all_objects.filter(
        company=company,
        user=OuterRef('pk'),
        work_year=work_year,
        work_week=work_week,
        status__in=[ReportStatus.SUBMITTED, ReportStatus.LOCKED],
    )
    return User.objects.for_tenant(company).filter(is_active=True).exclude(Exists(submitted))


def send_weekly_report_reminders(work_year: Optional[int] = None, work_week: Optional[int] = None) -> int:
    """Remind every member who has not submitted this week's report. Returns the count sent."""
    if work_year is None or work_week is None:
        work_year, work_week = weeks.current_week()

    logger.info("Sending weekly report reminders for %s-W%02d", work_year, work_week)
    sent = 0
    for company in onboarded_companies():
        if not company.get_settings().notification_enabled('weekly_reminder_enabled'):
            continue
        for user in users_missing_submission(company, work_year, work_week):
            NotificationService.notify_weekly_report_reminder(user, company, work_year, work_week)
            sent += 1

    logger.info("Sent %d weekly report reminders", sent)
    return sent


def build_company_summary(company, work_year: int, work_week: int) -> Dict:
    reports = WeeklyReport.all_objects.filter(
        company=company, work_year=work_year, work_week=work_week
    ).prefetch_related('items')

    total_hours = Decimal('0')
    billable_hours = Decimal('0')
    submitted_count = 0
    report_count = 0
    member_ids = set()

    for report in reports:
        report_count += 1
        if report.status != ReportStatus.DRAFT:
            submitted_count += 1
        member_ids.add(report.user_id)
        total_hours += report.total_hours()
        billable_hours += report.billable_hours()

    return {
        'total_hours': float(round(total_hours, 2)),
        'billable_hours': float(round(billable_hours, 2)),
        'report_count': report_count,
        'submitted_count': submitted_count,
        'draft_count': report_count - submitted_count,
        'member_count': len(member_ids),
    }


def digest_week(week: Optional[int] = None) -> Tuple[int, int]:
    """
    The digest week: ``week`` of the current ISO year, or the previous ISO
    week when not given.
    """
    year, current = weeks.current_week()
    if week is None:
        return weeks.previous_week(year, current)
    return year, int(week)


def send_weekly_summary_digest(work_year: Optional[int] = None, work_week: Optional[int] = None) -> int:
    """Send each company's weekly summary to its managers. Returns the count sent."""
    if work_year is None or work_week is None:
        work_year, work_week = digest_week(work_week)

    logger.info("Sending weekly summary digests for %s-W%02d", work_year, work_week)
    sent = 0
    for company in onboarded_companies():
        if not company.get_settings().notification_enabled('summary_digest_enabled'):
            continue

        summary = build_company_summary(company, work_year, work_week)
        if summary['report_count'] == 0:
            continue

        managers = User.objects.for_tenant(company).filter(role__in=DIGEST_ROLES, is_active=True)
        for manager in managers:
            NotificationService.notify_weekly_summary_digest(manager, company, work_year, work_week, summary)
            sent += 1

    logger.info("Sent %d weekly summary digests", sent)
    return sent
