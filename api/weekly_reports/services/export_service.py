"""
Weekly Report Export Service
============================
Aggregates and exports weekly reports within the caller's hierarchy scope.

Both the summary view and the CSV/XLSX downloads start from the same
filtered queryset; the downloads flatten it to one row per item.
"""

import csv
import io
from decimal import Decimal
from typing import Dict, List, Optional

from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from .. import weeks
from ..models import WeeklyReport, ReportStatus, ItemType

HEADERS = [
    '成員', '信箱', '單位', '部門', '小組', '年', '週', '狀態',
    '工作項目', '內容', '實際工時', '預計工時', '計費', '問題編號', '標籤', '類型',
]

# item columns start after the report columns
ITEM_COLUMN_OFFSET = 8

COLUMN_WIDTHS = [16, 28, 16, 16, 16, 8, 6, 10, 32, 48, 10, 10, 6, 16, 24, 10]


def _float(value) -> float:
    return float(round(value or Decimal('0'), 2))


class WeeklyReportExportService:
    """
    Summary and export of the reports visible to ``user``.

    ``filters`` may hold year, week, division_id, department_id and team_id.
    """

    MIME_TYPES = {
        'csv': 'text/csv; charset=utf-8',
        'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    }

    def __init__(self, company, user, filters: Optional[Dict] = None):
        self.company = company
        self.user = user
        self.filters = {key: value for key, value in (filters or {}).items() if value not in (None, '')}
        if 'year' not in self.filters:
            self.filters['year'] = weeks.current_week(company.timezone)[0]

    # =================================================================
    # Query
    # =================================================================

    def queryset(self):
        queryset = WeeklyReport.objects.for_tenant(self.company).select_related(
            'user', 'division', 'department', 'team'
        ).prefetch_related('items')

        queryset = queryset.filter(work_year=self.filters['year'])
        if self.filters.get('week'):
            queryset = queryset.filter(work_week=self.filters['week'])

        return self.restrict_to_hierarchy(queryset).order_by('user__full_name', 'work_year', 'work_week')

    def restrict_to_hierarchy(self, queryset):
        user = self.user
        division_id = self.filters.get('division_id')
        department_id = self.filters.get('department_id')
        team_id = self.filters.get('team_id')

        if user.role == 'company_admin':
            if division_id:
                queryset = queryset.filter(division_id=division_id)
            if department_id:
                queryset = queryset.filter(department_id=department_id)
            if team_id:
                queryset = queryset.filter(team_id=team_id)
            return queryset

        if user.role == 'division_lead':
            queryset = queryset.filter(division_id=user.division_id)
            if department_id:
                queryset = queryset.filter(department_id=department_id)
            if team_id:
                queryset = queryset.filter(team_id=team_id)
            return queryset

        if user.role == 'department_manager':
            queryset = queryset.filter(department_id=user.department_id)
            if team_id:
                queryset = queryset.filter(team_id=team_id)
            return queryset

        if user.role == 'team_lead':
            return queryset.filter(team_id=user.team_id)

        return queryset.filter(user_id=user.pk)

    @property
    def level(self) -> str:
        if self.filters.get('team_id'):
            return 'team'
        if self.filters.get('department_id'):
            return 'department'
        if self.filters.get('division_id'):
            return 'division'
        return 'all'

    # =================================================================
    # Summary
    # =================================================================

    def summary(self) -> Dict:
        reports = list(self.queryset())
        total_hours = Decimal('0')
        billable_hours = Decimal('0')
        submitted_count = 0
        members = {}

        for report in reports:
            if report.status != ReportStatus.DRAFT:
                submitted_count += 1

            hours = report.total_hours()
            billable = report.billable_hours()
            total_hours += hours
            billable_hours += billable

            member = members.setdefault(report.user_id, {
                'user_id': str(report.user_id),
                'user_name': report.user.full_name,
                'user_email': report.user.email,
                'total_hours': Decimal('0'),
                'billable_hours': Decimal('0'),
                'report_count': 0,
                'reports': [],
            })
            member['total_hours'] += hours
            member['billable_hours'] += billable
            member['report_count'] += 1
            member['reports'].append({
                'id': str(report.pk),
                'work_year': report.work_year,
                'work_week': report.work_week,
                'status': report.status,
                'hours': _float(hours),
                'billable_hours': _float(billable),
                'summary': report.summary,
            })

        for member in members.values():
            member['total_hours'] = _float(member['total_hours'])
            member['billable_hours'] = _float(member['billable_hours'])

        return {
            'level': self.level,
            'company_id': str(self.company.pk),
            'company_name': self.company.name,
            'total_hours': _float(total_hours),
            'billable_hours': _float(billable_hours),
            'report_count': len(reports),
            'submitted_count': submitted_count,
            'draft_count': len(reports) - submitted_count,
            'member_count': len(members),
            'members': list(members.values()),
        }

    # =================================================================
    # Rows
    # =================================================================

    def rows(self) -> List[list]:
        rows = []
        for report in self.queryset():
            base = [
                report.user.full_name,
                report.user.email,
                report.division.name if report.division else '',
                report.department.name if report.department else '',
                report.team.name if report.team else '',
                report.work_year,
                report.work_week,
                ReportStatus(report.status).label,
            ]
            items = report.current_week_items() + report.next_week_items()
            if not items:
                rows.append(base + [''] * (len(HEADERS) - ITEM_COLUMN_OFFSET))
                continue
            for item in items:
                rows.append(base + [
                    item.title,
                    item.content or '',
                    _float(item.hours_spent),
                    _float(item.planned_hours),
                    '是' if item.is_billable else '否',
                    item.issue_reference or '',
                    ', '.join(item.tags or []),
                    ItemType(item.type).label,
                ])
        return rows

    # =================================================================
    # Files
    # =================================================================

    def filename(self, extension: str, now=None) -> str:
        now = now or timezone.localtime()
        year = self.filters['year']
        week = self.filters.get('week')
        period = f"{year}{int(week):02d}" if week else str(year)
        return f"{self.company.slug}-{self.level}-{period}-{now.strftime('%Y%m%d%H%M%S')}.{extension}"

    def export(self, export_format: str) -> bytes:
        if export_format == 'csv':
            return self.to_csv()
        if export_format == 'xlsx':
            return self.to_xlsx()
        raise ValueError(f"Unsupported export format: {export_format}")

    def to_csv(self) -> bytes:
        output = io.StringIO()
        # BOM so spreadsheet apps detect UTF-8
        output.write('\ufeff')
        writer = csv.writer(output)
        writer.writerow(HEADERS)
        writer.writerows(self.rows())
        return output.getvalue().encode('utf-8')

    def to_xlsx(self) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = '週報'

        header_font = Font(bold=True)
        header_fill = PatternFill(start_color='E0E0E0', end_color='E0E0E0', fill_type='solid')

        ws.append(HEADERS)
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill
        ws.freeze_panes = 'A2'

        for row in self.rows():
            ws.append(row)

        for index, width in enumerate(COLUMN_WIDTHS, start=1):
            ws.column_dimensions[get_column_letter(index)].width = width

        output = io.BytesIO()
        wb.save(output)
        return output.getvalue()
