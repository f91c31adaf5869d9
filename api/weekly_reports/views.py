"""
Weekly Report Views
===================
The caller's weekly reports, the draft template for a new week, workflow
transitions and the hierarchy-scoped summary/export.
"""

import logging

from django.http import HttpResponse
from django.urls import reverse
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from core.services.audit_service import AuditService
from core.tenants.mixins import TenantGenericViewSet
from holidays.models import Holiday
from holidays.serializers import HolidaySerializer
from . import policies, weeks
from .models import ReportStatus
from .serializers import (
    SummaryQuerySerializer,
    WeekQuerySerializer,
    WeeklyReportContentSerializer,
    WeeklyReportCreateSerializer,
    WeeklyReportDetailSerializer,
    WeeklyReportListQuerySerializer,
    WeeklyReportListSerializer,
)
from .services import workflow
from .services.export_service import WeeklyReportExportService

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = '當週週報已存在'


@extend_schema_view(
    list=extend_schema(
        parameters=[WeeklyReportListQuerySerializer],
        summary='我的週報 / My weekly reports'
    ),
    retrieve=extend_schema(summary='週報詳情 / Weekly report detail'),
    create=extend_schema(
        request=WeeklyReportCreateSerializer,
        responses={201: WeeklyReportDetailSerializer, 303: None},
        summary='建立週報 / Create weekly report'
    ),
    update=extend_schema(
        request=WeeklyReportContentSerializer,
        responses=WeeklyReportDetailSerializer,
        summary='更新週報 / Update weekly report'
    ),
    destroy=extend_schema(summary='刪除週報 / Delete weekly report'),
)
@extend_schema(tags=['Weekly Reports'])
class WeeklyReportViewSet(mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          mixins.DestroyModelMixin,
                          TenantGenericViewSet):
    """
    Weekly reports of the current tenant.

    ``list`` only returns the caller's own reports; detail routes accept any
    report of the tenant and are gated by the weekly report policies.
    """
    serializer_class = WeeklyReportDetailSerializer
    lookup_value_regex = '[0-9a-f-]{36}'
    http_method_names = ['get', 'post', 'put', 'delete', 'head', 'options']

    def get_queryset(self):
        return workflow.report_queryset(self.tenant)

    def get_serializer_class(self):
        if self.action == 'list':
            return WeeklyReportListSerializer
        return WeeklyReportDetailSerializer

    def check_object_permissions(self, request, obj):
        super().check_object_permissions(request, obj)
        rule = {
            'update': policies.update,
            'destroy': policies.delete,
            'submit': policies.submit,
            'lock': policies.lock,
        }.get(self.action, policies.view)
        if not rule(request.user, obj):
            raise PermissionDenied()

    def _detail(self, report, message=None, status_code=status.HTTP_200_OK):
        payload = {'success': True, 'data': WeeklyReportDetailSerializer(report).data}
        if message:
            payload['message'] = message
        return Response(payload, status=status_code)

    def _redirect_to(self, report):
        location = self.request.build_absolute_uri(
            reverse('weekly-report-detail', kwargs={'company': self.company.slug, 'pk': report.pk})
        )
        return Response(
            {
                'success': True,
                'message': DUPLICATE_MESSAGE,
                'data': {'id': str(report.pk), 'url': location},
            },
            status=status.HTTP_303_SEE_OTHER,
            headers={'Location': location},
        )

    def _resolve_week(self, params):
        serializer = WeekQuerySerializer(data=params)
        serializer.is_valid(raise_exception=True)
        return weeks.resolve_week(
            serializer.validated_data.get('work_year'),
            serializer.validated_data.get('work_week'),
            self.company.timezone,
        )

    # =================================================================
    # Collection
    # =================================================================

    def list(self, request, *args, **kwargs):
        query = WeeklyReportListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        filter_year = query.validated_data.get('filter_year')
        filter_status = query.validated_data.get('filter_status')

        own = self.get_queryset().filter(user=request.user)
        queryset = own
        if filter_year and filter_year != 'all' and filter_year.isdigit():
            queryset = queryset.filter(work_year=int(filter_year))
        if filter_status and filter_status != 'all' and filter_status in ReportStatus.values:
            queryset = queryset.filter(status=filter_status)

        available_years = sorted(set(own.values_list('work_year', flat=True)), reverse=True)
        today = weeks.current_week(self.company.timezone)
        missing = weeks.missing_weeks(own.values_list('work_year', 'work_week'), until=today)

        page = self.paginate_queryset(queryset)
        if page is not None:
            response = self.get_paginated_response(WeeklyReportListSerializer(page, many=True).data)
            response.data['available_years'] = available_years
            response.data['missing_weeks'] = missing
            return response

        return Response({
            'success': True,
            'data': WeeklyReportListSerializer(queryset, many=True).data,
            'available_years': available_years,
            'missing_weeks': missing,
            'filters': {'year': filter_year or 'all', 'status': filter_status or 'all'},
        })

    def create(self, request, *args, **kwargs):
        if not policies.create(request.user, self.company):
            raise PermissionDenied()
        serializer = WeeklyReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            report = workflow.create_report(self.company, request.user, serializer.validated_data)
        except workflow.DuplicateWeeklyReport as exc:
            return self._redirect_to(exc.report)

        AuditService.created(
            report,
            properties={'work_year': report.work_year, 'work_week': report.work_week},
            request=request,
        )
        report = self.get_queryset().get(pk=report.pk)
        return self._detail(report, message='週報已建立', status_code=status.HTTP_201_CREATED)

    @extend_schema(
        parameters=[WeekQuerySerializer],
        responses={200: None, 303: None},
        summary='新週報範本 / New weekly report template'
    )
    @action(detail=False, methods=['get'], url_path='create')
    def template(self, request, **kwargs):
        if not policies.create(request.user, self.company):
            raise PermissionDenied()
        work_year, work_week = self._resolve_week(request.query_params)

        existing = workflow.find_report(self.company, request.user, work_year, work_week)
        if existing is not None:
            return self._redirect_to(existing)

        holidays = Holiday.objects.for_iso_week(work_year, work_week)
        return Response({
            'success': True,
            'data': {
                'work_year': work_year,
                'work_week': work_week,
                'status': ReportStatus.DRAFT,
                'week_range': weeks.week_date_range(work_year, work_week),
                'next_week_range': weeks.week_date_range(*weeks.shift_week(work_year, work_week, 1)),
                'summary': None,
                'current_week': workflow.prefill_items(self.company, request.user, work_year, work_week),
                'next_week': [],
                'holidays': HolidaySerializer(holidays, many=True).data,
            }
        })

    @extend_schema(parameters=[WeekQuerySerializer], summary='帶入上週計畫 / Prefill from last week')
    @action(detail=False, methods=['get'])
    def prefill(self, request, **kwargs):
        work_year, work_week = self._resolve_week(request.query_params)
        items = workflow.prefill_items(self.company, request.user, work_year, work_week)
        return Response({
            'success': True,
            'data': {'work_year': work_year, 'work_week': work_week, 'items': items}
        })

    @extend_schema(
        parameters=[SummaryQuerySerializer],
        summary='週報彙總與匯出 / Weekly report summary and export'
    )
    @action(detail=False, methods=['get'])
    def summary(self, request, **kwargs):
        if not policies.export(request.user):
            raise PermissionDenied()
        query = SummaryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        filters = dict(query.validated_data)
        export_format = filters.pop('export', None)

        service = WeeklyReportExportService(self.company, request.user, filters)
        if not export_format:
            return Response({'success': True, 'data': service.summary()})

        content = service.export(export_format)
        filename = service.filename(export_format)
        AuditService.exported(
            self.company,
            description=f'Weekly reports exported as {export_format}',
            properties={
                'format': export_format,
                'level': service.level,
                'filters': {key: str(value) for key, value in service.filters.items()},
            },
            request=request,
        )
        logger.info("Exported weekly reports of %s as %s", self.company.slug, filename)

        response = HttpResponse(content, content_type=service.MIME_TYPES[export_format])
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response

    # =================================================================
    # Single report
    # =================================================================

    def retrieve(self, request, *args, **kwargs):
        return self._detail(self.get_object())

    def update(self, request, *args, **kwargs):
        report = self.get_object()
        serializer = WeeklyReportContentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        workflow.update_report(report, serializer.validated_data)
        AuditService.updated(
            report,
            properties={
                'current_week_items': len(serializer.validated_data.get('current_week') or []),
                'next_week_items': len(serializer.validated_data.get('next_week') or []),
            },
            request=request,
        )
        return self._detail(self.get_queryset().get(pk=report.pk), message='週報已更新')

    def perform_destroy(self, instance):
        AuditService.deleted(
            instance,
            properties={'work_year': instance.work_year, 'work_week': instance.work_week},
            request=self.request,
        )
        instance.delete()

    def destroy(self, request, *args, **kwargs):
        super().destroy(request, *args, **kwargs)
        return Response({'success': True, 'message': '週報已刪除'})

    @extend_schema(request=None, responses=WeeklyReportDetailSerializer, summary='送出週報 / Submit weekly report')
    @action(detail=True, methods=['post'])
    def submit(self, request, **kwargs):
        report = self.get_object()
        workflow.submit(report, request.user)
        AuditService.submitted(report, properties={'submitted_at': report.submitted_at.isoformat()},
                               request=request)
        return self._detail(report, message='週報已送出')

    @extend_schema(request=None, responses=WeeklyReportDetailSerializer, summary='退回週報 / Reopen weekly report')
    @action(detail=True, methods=['post'])
    def reopen(self, request, **kwargs):
        report = self.get_object()
        if report.is_draft:
            return self._detail(report, message='此週報已是草稿狀態。')
        if not policies.reopen(request.user, report):
            raise PermissionDenied()

        workflow.reopen(report)
        AuditService.reopened(report, request=request)
        return self._detail(report, message='週報已退回為草稿')

    @extend_schema(request=None, responses=WeeklyReportDetailSerializer, summary='鎖定週報 / Lock weekly report')
    @action(detail=True, methods=['post'])
    def lock(self, request, **kwargs):
        report = self.get_object()
        workflow.lock(report, request.user)
        AuditService.updated(
            report,
            description='Weekly report locked',
            properties={'status': report.status, 'locked_at': report.locked_at.isoformat()},
            request=request,
        )
        return self._detail(report, message='週報已鎖定')
