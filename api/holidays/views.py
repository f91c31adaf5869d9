"""
Holiday Views
=============
Read-only holiday calendar for tenant members.
"""

from drf_spectacular.utils import extend_schema
from rest_framework.response import Response

from core.tenants.mixins import TenantAPIView
from weekly_reports import weeks
from .serializers import HolidaySerializer, HolidayWeekQuerySerializer, HolidayYearQuerySerializer
from .services.cache_service import HolidayCacheService


class HolidayListView(TenantAPIView):
    """
    GET /{company}/holidays/?year=
    """

    @extend_schema(
        tags=['Holidays'],
        parameters=[HolidayYearQuerySerializer],
        responses=HolidaySerializer(many=True),
        summary='年度假期 / Holidays of a year',
    )
    def get(self, request, **kwargs):
        query = HolidayYearQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        year = query.validated_data.get('year') or weeks.current_week(self.company.timezone)[0]

        holidays = HolidayCacheService().get_holidays(year)
        return Response({
            'success': True,
            'data': HolidaySerializer(holidays, many=True).data,
            'year': year,
        })


class HolidayWeekView(TenantAPIView):
    """
    GET /{company}/holidays/week/?year=&week=
    """

    @extend_schema(
        tags=['Holidays'],
        parameters=[HolidayWeekQuerySerializer],
        responses=HolidaySerializer(many=True),
        summary='ISO 週假期 / Holidays of an ISO week',
    )
    def get(self, request, **kwargs):
        query = HolidayWeekQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        current_year, current_week = weeks.current_week(self.company.timezone)
        year = query.validated_data.get('year') or current_year
        week = query.validated_data.get('week') or current_week

        holidays = HolidayCacheService().get_holidays_for_week(year, week)
        return Response({
            'success': True,
            'data': HolidaySerializer(holidays, many=True).data,
            'year': year,
            'week': week,
        })
