"""
Tenant Settings Views
=====================
Company settings endpoints under ``/{company}/`` and the HQ company
administration endpoints under ``/hq/``.
"""

import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.generics import ListCreateAPIView
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsCompanyAdmin, IsHqAdmin
from core.services.audit_service import AuditService
from .mixins import TenantAPIView
from .models import Company, CompanySetting, OrganizationLevel
from .serializers import (
    BrandingSerializer,
    CompanySerializer,
    CompanySettingSerializer,
    HqCompanyCreateSerializer,
    HqCompanySerializer,
    HqCompanyUpdateSerializer,
    IpWhitelistSerializer,
    NotificationPreferencesSerializer,
    OrganizationLevelsSerializer,
    UserLimitSerializer,
    WelcomePageSerializer,
)

logger = logging.getLogger(__name__)


def _organization_snapshot(company):
    from organization.models import Division, Department, Team

    def rows(model):
        return [
            {'id': str(unit.id), 'name': unit.name, 'slug': unit.slug, 'is_active': unit.is_active}
            for unit in model.objects.for_tenant(company).order_by('sort_order', 'name')
        ]

    return {
        'divisions': rows(Division),
        'departments': rows(Department),
        'teams': rows(Team),
    }


def _assignable_roles():
    from users.models import TENANT_ROLES
    return [{'value': role.value, 'label': role.label} for role in TENANT_ROLES]


class TenantSettingsView(TenantAPIView):
    """
    GET /{company}/settings/
    """

    @extend_schema(
        tags=['Tenants'],
        summary='取得公司設定 / Get company settings',
        description='公司資訊、設定、組織結構與可指派角色。\n\nCompany info, settings, organization tree and assignable roles.'
    )
    def get(self, request, **kwargs):
        company = self.company
        company_settings = company.get_settings()
        return Response({
            'success': True,
            'data': {
                'company': CompanySerializer(company).data,
                'settings': CompanySettingSerializer(company_settings).data,
                'organization': _organization_snapshot(company),
                'roles': _assignable_roles(),
            }
        })


class CompanySettingUpdateView(TenantAPIView):
    """
    Base for admin-only settings updates that audit old/new values.
    """
    permission_classes = [IsCompanyAdmin]
    serializer_class = None
    marks_onboarded = False
    success_message = '設定已更新'

    def get_old_value(self, company, company_settings):
        raise NotImplementedError

    def apply(self, company, company_settings, data):
        raise NotImplementedError

    def put(self, request, **kwargs):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)

        company = self.company
        company_settings = company.get_settings()
        old_value = self.get_old_value(company, company_settings)

        with transaction.atomic():
            new_value = self.apply(company, company_settings, serializer)
            if self.marks_onboarded:
                company.mark_onboarded()

        AuditService.updated(
            company_settings,
            description=self.success_message,
            properties={'old': old_value, 'new': new_value},
            request=request,
        )
        return Response({'success': True, 'message': self.success_message, 'data': new_value})


class WelcomePageView(CompanySettingUpdateView):
    """
    PUT /{company}/welcome-page/
    """
    serializer_class = WelcomePageSerializer
    marks_onboarded = True
    success_message = '歡迎頁設定已更新'

    def get_old_value(self, company, company_settings):
        return company_settings.welcome_page

    def apply(self, company, company_settings, serializer):
        company_settings.welcome_page = serializer.to_storage()
        company_settings.save(update_fields=['welcome_page', 'updated_at'])
        return company_settings.welcome_page

    @extend_schema(
        tags=['Tenants'],
        request=WelcomePageSerializer,
        summary='更新歡迎頁 / Update welcome page',
    )
    def put(self, request, **kwargs):
        return super().put(request, **kwargs)


class IpWhitelistView(CompanySettingUpdateView):
    """
    PUT /{company}/settings/ip-whitelist/
    """
    serializer_class = IpWhitelistSerializer
    marks_onboarded = True
    success_message = 'IP 白名單已更新'

    def get_old_value(self, company, company_settings):
        return list(company_settings.login_ip_whitelist or [])

    def apply(self, company, company_settings, serializer):
        company_settings.login_ip_whitelist = serializer.validated_data['login_ip_whitelist']
        company_settings.save(update_fields=['login_ip_whitelist', 'updated_at'])
        return company_settings.login_ip_whitelist

    @extend_schema(
        tags=['Tenants'],
        request=IpWhitelistSerializer,
        summary='更新 IP 白名單 / Update IP whitelist',
        description='每筆須為有效 IP 或 CIDR。\n\nEach entry must be a valid IP or CIDR.'
    )
    def put(self, request, **kwargs):
        return super().put(request, **kwargs)


class BrandingView(CompanySettingUpdateView):
    """
    PUT /{company}/settings/branding/
    """
    serializer_class = BrandingSerializer
    success_message = '品牌設定已更新'

    def get_old_value(self, company, company_settings):
        return company.branding

    def apply(self, company, company_settings, serializer):
        branding = dict(company.branding or {})
        branding.update(serializer.validated_data)
        company.branding = branding
        company.save(update_fields=['branding', 'updated_at'])
        return branding

    @extend_schema(tags=['Tenants'], request=BrandingSerializer, summary='更新品牌 / Update branding')
    def put(self, request, **kwargs):
        return super().put(request, **kwargs)


class OrganizationLevelsView(CompanySettingUpdateView):
    """
    GET/PUT /{company}/settings/organization-levels/
    """
    serializer_class = OrganizationLevelsSerializer
    success_message = '組織層級已更新'

    def get_permissions(self):
        if self.request.method == 'GET':
            return [permission() for permission in TenantAPIView.permission_classes]
        return super().get_permissions()

    @extend_schema(tags=['Tenants'], summary='取得組織層級 / Get organization levels')
    def get(self, request, **kwargs):
        company_settings = self.company.get_settings()
        return Response({
            'success': True,
            'data': {
                'organization_levels': company_settings.get_enabled_levels(),
                'available_levels': [
                    {'value': level.value, 'label': level.label} for level in OrganizationLevel
                ],
            }
        })

    def get_old_value(self, company, company_settings):
        return company_settings.get_enabled_levels()

    def apply(self, company, company_settings, serializer):
        from organization.models import UNIT_MODELS

        levels = serializer.validated_data['organization_levels']
        removed = [level for level in company_settings.get_enabled_levels() if level not in levels]
        in_use = [
            level for level in removed
            if UNIT_MODELS[level].all_objects.filter(company=company).exists()
        ]
        if in_use:
            raise ValidationError({
                'organization_levels': [f'{OrganizationLevel(level).label} 仍有資料，無法停用。' for level in in_use]
            })

        company_settings.organization_levels = levels
        company_settings.save(update_fields=['organization_levels', 'updated_at'])
        return levels

    @extend_schema(tags=['Tenants'], request=OrganizationLevelsSerializer, summary='更新組織層級 / Update organization levels')
    def put(self, request, **kwargs):
        return super().put(request, **kwargs)


class NotificationPreferencesView(CompanySettingUpdateView):
    """
    PUT /{company}/settings/notification-preferences/
    """
    serializer_class = NotificationPreferencesSerializer
    success_message = '通知偏好已更新'

    def get_old_value(self, company, company_settings):
        return dict(company_settings.notification_preferences or {})

    def apply(self, company, company_settings, serializer):
        preferences = dict(company_settings.notification_preferences or {})
        preferences.update(serializer.validated_data)
        company_settings.notification_preferences = preferences
        company_settings.save(update_fields=['notification_preferences', 'updated_at'])
        return preferences

    @extend_schema(
        tags=['Tenants'],
        request=NotificationPreferencesSerializer,
        summary='更新通知偏好 / Update notification preferences'
    )
    def put(self, request, **kwargs):
        return super().put(request, **kwargs)


# =================================================================
# HQ
# =================================================================

class HqPagination(PageNumberPagination):
    page_size = 15
    page_size_query_param = 'per_page'
    max_page_size = 100


class HqCompanyListCreateView(ListCreateAPIView):
    """
    GET/POST /hq/companies/
    """
    permission_classes = [IsHqAdmin]
    pagination_class = HqPagination
    queryset = Company.objects.select_related('settings').order_by('-created_at')

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return HqCompanyCreateSerializer
        return HqCompanySerializer

    @extend_schema(tags=['HQ'], summary='列出公司 / List companies')
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=['HQ'],
        request=HqCompanyCreateSerializer,
        responses={201: HqCompanySerializer},
        summary='建立公司 / Create company'
    )
    def post(self, request, *args, **kwargs):
        serializer = HqCompanyCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        admin_user = data.pop('admin_user_id', None)

        with transaction.atomic():
            company = Company.objects.create(**data)
            CompanySetting.objects.create(company=company)
            if admin_user is not None:
                admin_user.company = company
                admin_user.role = 'company_admin'
                admin_user.division = None
                admin_user.department = None
                admin_user.team = None
                admin_user.save(update_fields=['company', 'role', 'division', 'department', 'team', 'updated_at'])
                company.increment_user_count()

        logger.info("HQ created company %s", company.slug)
        AuditService.created(company, description='總部建立公司', request=request)
        company = Company.objects.select_related('settings').get(pk=company.pk)
        return Response(HqCompanySerializer(company).data, status=status.HTTP_201_CREATED)


class HqCompanyDetailView(APIView):
    """
    GET/PATCH /hq/companies/{id}/
    """
    permission_classes = [IsHqAdmin]

    def get_company(self, pk):
        return get_object_or_404(Company.objects.select_related('settings'), pk=pk)

    @extend_schema(tags=['HQ'], responses=HqCompanySerializer, summary='取得公司 / Get company')
    def get(self, request, pk):
        company = self.get_company(pk)
        company.get_settings()
        return Response(HqCompanySerializer(company).data)

    @extend_schema(
        tags=['HQ'],
        request=HqCompanyUpdateSerializer,
        responses=HqCompanySerializer,
        summary='更新公司 / Update company'
    )
    def patch(self, request, pk):
        company = self.get_company(pk)
        serializer = HqCompanyUpdateSerializer(company, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        old_status = company.status
        new_status = data.pop('status', None)
        for field, value in data.items():
            setattr(company, field, value)
        if new_status is not None:
            company.apply_status(new_status)
        company.save()

        properties = {'changes': sorted(serializer.validated_data.keys())}
        if new_status is not None and new_status != old_status:
            properties['status'] = {'old': old_status, 'new': new_status}
            logger.info("HQ moved company %s from %s to %s", company.slug, old_status, new_status)
        AuditService.updated(company, description='總部更新公司', properties=properties, request=request)
        return Response(HqCompanySerializer(self.get_company(pk)).data)


class HqCompanyUserLimitView(APIView):
    """
    PATCH /hq/companies/{id}/user-limit/
    """
    permission_classes = [IsHqAdmin]

    @extend_schema(tags=['HQ'], request=UserLimitSerializer, summary='調整人數上限 / Update user limit')
    def patch(self, request, pk):
        company = get_object_or_404(Company, pk=pk)
        serializer = UserLimitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        old_limit = company.user_limit
        company.user_limit = serializer.validated_data['user_limit']
        company.save(update_fields=['user_limit', 'updated_at'])

        AuditService.updated(
            company,
            description='總部調整人數上限',
            properties={'user_limit': {'old': old_limit, 'new': company.user_limit}},
            request=request,
        )
        return Response({
            'success': True,
            'data': {'id': str(company.id), 'user_limit': company.user_limit,
                     'current_user_count': company.current_user_count},
        })
