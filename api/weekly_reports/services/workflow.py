"""
Weekly Report Workflow
======================
Status transitions and item synchronization.

    draft --submit--> submitted --lock--> locked
      ^                   |
      +------reopen-------+

Items are never diffed: every save deletes the report's items and recreates
them from the payload inside one transaction.
"""
import logging
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from core.services.notification_service import NotificationService
from users.models import User, Role
from .. import weeks
from ..models import WeeklyReport, WeeklyReportItem, ReportStatus, ItemType

logger = logging.getLogger(__name__)


class DuplicateWeeklyReport(Exception):
    """A report already exists for the requested (user, year, week)"""

    def __init__(self, report):
        super().__init__(f"Weekly report {report.pk} already exists")
        self.report = report


def report_queryset(company):
    return WeeklyReport.objects.for_tenant(company).select_related('user').prefetch_related('items')


def find_report(company, user, work_year: int, work_week: int) -> Optional[WeeklyReport]:
    return WeeklyReport.objects.for_tenant(company).filter(
        user=user, work_year=work_year, work_week=work_week
    ).first()


def _build_items(report, items, item_type):
    built = []
    for index, item in enumerate(items or []):
        current = item_type == ItemType.CURRENT_WEEK
        built.append(WeeklyReportItem(
            weekly_report=report,
            type=item_type,
            sort_order=index,
            title=item['title'],
            content=item.get('content') or None,
            hours_spent=(item.get('hours_spent') or Decimal('0')) if current else Decimal('0'),
            planned_hours=item.get('planned_hours'),
            issue_reference=item.get('issue_reference') or None,
            is_billable=bool(item.get('is_billable', False)) if current else False,
            tags=list(item.get('tags') or []),
            started_at=item.get('started_at'),
            ended_at=item.get('ended_at'),
            metadata=item.get('metadata'),
        ))
    return built


def sync_items(report, current_week=None, next_week=None) -> None:
    """Replace every item of ``report`` with the given lists"""
    with transaction.atomic():
        report.items.all().delete()
        items = _build_items(report, current_week, ItemType.CURRENT_WEEK)
        items += _build_items(report, next_week, ItemType.NEXT_WEEK)
        if items:
            WeeklyReportItem.objects.bulk_create(items)
    # drop any prefetched items
    if hasattr(report, '_prefetched_objects_cache'):
        report._prefetched_objects_cache.pop('items', None)


def create_report(company, user, data) -> WeeklyReport:
    """
    Create a draft for ``user`` with the author's hierarchy copied onto it.

    Raises DuplicateWeeklyReport when the week already has a report.
    """
    existing = find_report(company, user, data['work_year'], data['work_week'])
    if existing is not None:
        raise DuplicateWeeklyReport(existing)

    try:
        with transaction.atomic():
            report = WeeklyReport.objects.create(
                company=company,
                user=user,
                division_id=user.division_id,
                department_id=user.department_id,
                team_id=user.team_id,
                work_year=data['work_year'],
                work_week=data['work_week'],
                summary=data.get('summary'),
                metadata=data.get('metadata') or {},
                status=ReportStatus.DRAFT,
            )
            sync_items(report, data.get('current_week'), data.get('next_week'))
    except IntegrityError:
        existing = find_report(company, user, data['work_year'], data['work_week'])
        if existing is None:
            raise
        raise DuplicateWeeklyReport(existing)

    logger.info(
        "Created weekly report %s for %s (%s-W%02d)",
        report.pk, user.email, report.work_year, report.work_week
    )
    return report


def update_report(report, data) -> WeeklyReport:
    with transaction.atomic():
        report.summary = data.get('summary')
        report.metadata = data.get('metadata') or {}
        report.save(update_fields=['summary', 'metadata', 'updated_at'])
        sync_items(report, data.get('current_week'), data.get('next_week'))
    return report


def submit(report, user) -> WeeklyReport:
    if not report.is_draft:
        raise ValidationError({'detail': '只有草稿狀態的週報可以送出。'})
    report.status = ReportStatus.SUBMITTED
    report.submitted_at = timezone.now()
    report.submitted_by = user
    report.save(update_fields=['status', 'submitted_at', 'submitted_by', 'updated_at'])
    notify_managers_of_submission(report, user)
    return report


def reopen(report) -> WeeklyReport:
    report.status = ReportStatus.DRAFT
    report.submitted_at = None
    report.submitted_by = None
    report.save(update_fields=['status', 'submitted_at', 'submitted_by', 'updated_at'])
    return report


def lock(report, user) -> WeeklyReport:
    if not report.is_submitted:
        raise ValidationError({'detail': '只有已送出的週報可以鎖定。'})
    now = timezone.now()
    report.status = ReportStatus.LOCKED
    report.locked_at = now
    report.approved_at = now
    report.approved_by = user
    report.save(update_fields=['status', 'locked_at', 'approved_at', 'approved_by', 'updated_at'])
    return report


def report_managers(report):
    """company_admins plus the leads whose unit matches the report"""
    scope = Q(role=Role.COMPANY_ADMIN)
    if report.division_id:
        scope |= Q(role=Role.DIVISION_LEAD, division_id=report.division_id)
    if report.department_id:
        scope |= Q(role=Role.DEPARTMENT_MANAGER, department_id=report.department_id)
    if report.team_id:
        scope |= Q(role=Role.TEAM_LEAD, team_id=report.team_id)
    return User.objects.for_tenant(report.company_id).filter(scope, is_active=True).exclude(pk=report.user_id)


def notify_managers_of_submission(report, submitted_by) -> int:
    company = report.company
    if not company.get_settings().notification_enabled('submission_notice_enabled'):
        return 0
    sent = 0
    for manager in report_managers(report):
        NotificationService.notify_weekly_report_submitted(manager, company, report, submitted_by)
        sent += 1
    return sent


def prefill_items(company, user, work_year: int, work_week: int) -> list:
    """
    Suggested current_week items: last week's next_week plans, with the
    planned hours offered as hours spent.
    """
    previous_year, previous_week = weeks.previous_week(work_year, work_week)
    previous = report_queryset(company).filter(
        user=user, work_year=previous_year, work_week=previous_week
    ).first()
    if previous is None:
        return []

    return [
        {
            'title': item.title,
            'content': item.content,
            'hours_spent': float(item.planned_hours or 0),
            'planned_hours': float(item.planned_hours) if item.planned_hours is not None else None,
            'issue_reference': item.issue_reference,
            'is_billable': False,
            'tags': list(item.tags or []),
        }
        for item in previous.next_week_items()
    ]
