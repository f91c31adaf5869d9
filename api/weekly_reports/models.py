"""
Weekly Report Models
====================
One report per member per ISO week, with its current-week work items and
next-week plans.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.tenants.base import TenantAwareModel


class ReportStatus(models.TextChoices):
    DRAFT = 'draft', '草稿'
    SUBMITTED = 'submitted', '已送出'
    LOCKED = 'locked', '已鎖定'


class ItemType(models.TextChoices):
    CURRENT_WEEK = 'current_week', '本週工作'
    NEXT_WEEK = 'next_week', '下週計畫'


class WeeklyReport(TenantAwareModel):
    """
    週報 - 每位成員每個 ISO 週一份

    division/department/team are copied from the author when the report is
    created and are not updated when the author later moves.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='weekly_reports'
    )
    division = models.ForeignKey(
        'organization.Division', on_delete=models.SET_NULL, null=True, blank=True, related_name='weekly_reports'
    )
    department = models.ForeignKey(
        'organization.Department', on_delete=models.SET_NULL, null=True, blank=True, related_name='weekly_reports'
    )
    team = models.ForeignKey(
        'organization.Team', on_delete=models.SET_NULL, null=True, blank=True, related_name='weekly_reports'
    )
    work_year = models.PositiveSmallIntegerField()
    work_week = models.PositiveSmallIntegerField()
    status = models.CharField(max_length=32, choices=ReportStatus.choices, default=ReportStatus.DRAFT)
    summary = models.TextField(null=True, blank=True)
    metadata = models.JSONField(null=True, blank=True)

    submitted_at = models.DateTimeField(null=True, blank=True)
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='submitted_weekly_reports'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='approved_weekly_reports'
    )
    locked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-work_year', '-work_week']
        constraints = [
            models.UniqueConstraint(
                fields=['company', 'user', 'work_year', 'work_week'],
                name='uniq_weekly_report_per_user_week'
            ),
        ]
        indexes = [
            models.Index(fields=['company', 'status', 'work_year', 'work_week'], name='weekly_repo_status_week_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} {self.work_year}-W{self.work_week:02d} ({self.status})"

    @property
    def is_draft(self) -> bool:
        return self.status == ReportStatus.DRAFT

    @property
    def is_submitted(self) -> bool:
        return self.status == ReportStatus.SUBMITTED

    @property
    def is_locked(self) -> bool:
        return self.status == ReportStatus.LOCKED

    def items_of(self, item_type):
        """Items of one type in sort order; uses prefetched items when present"""
        return sorted(
            (item for item in self.items.all() if item.type == item_type),
            key=lambda item: item.sort_order
        )

    def current_week_items(self):
        return self.items_of(ItemType.CURRENT_WEEK)

    def next_week_items(self):
        return self.items_of(ItemType.NEXT_WEEK)

    def total_hours(self) -> Decimal:
        """Actual hours: the sum of current_week hours_spent only"""
        return sum((item.hours_spent or Decimal('0') for item in self.current_week_items()), Decimal('0'))

    def billable_hours(self) -> Decimal:
        return sum(
            (item.hours_spent or Decimal('0') for item in self.current_week_items() if item.is_billable),
            Decimal('0')
        )

    def planned_hours(self) -> Decimal:
        return sum((item.planned_hours or Decimal('0') for item in self.next_week_items()), Decimal('0'))


class WeeklyReportItem(BaseModel):
    """
    週報項目 - 本週工作或下週計畫
    """
    weekly_report = models.ForeignKey(WeeklyReport, on_delete=models.CASCADE, related_name='items')
    type = models.CharField(max_length=16, choices=ItemType.choices, default=ItemType.CURRENT_WEEK)
    sort_order = models.PositiveSmallIntegerField(default=0)
    title = models.CharField(max_length=255)
    content = models.TextField(null=True, blank=True)
    hours_spent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    planned_hours = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    issue_reference = models.CharField(max_length=191, null=True, blank=True)
    is_billable = models.BooleanField(default=False)
    tags = models.JSONField(default=list, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ['type', 'sort_order']
        indexes = [
            models.Index(fields=['weekly_report', 'type', 'sort_order'], name='weekly_item_report_order_idx'),
            models.Index(fields=['issue_reference'], name='weekly_item_issue_ref_idx'),
        ]

    def __str__(self):
        return self.title
