"""
Organization Views
==================
CRUD for divisions, departments and teams, their self-registration
invitation links, and the organization tree.
"""

import logging

from django.db.models import Count
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import filters, mixins, status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from core.services.audit_service import AuditService
from core.tenants.mixins import TenantAPIView, TenantGenericViewSet
from . import policies
from .models import Division, Department, Team
from .serializers import (
    DivisionSerializer,
    DepartmentSerializer,
    TeamSerializer,
    InvitationLinkSerializer,
    InvitationToggleSerializer,
    invitation_url,
)

logger = logging.getLogger(__name__)


class OrganizationUnitViewSet(mixins.ListModelMixin,
                              mixins.RetrieveModelMixin,
                              mixins.CreateModelMixin,
                              mixins.UpdateModelMixin,
                              mixins.DestroyModelMixin,
                              TenantGenericViewSet):
    """
    Shared CRUD for one organization level. Subclasses set ``model``,
    ``serializer_class`` and ``blocking_relations``.
    """
    model = None
    # related names that must be empty before a unit can be deleted
    blocking_relations = ()
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name', 'slug']
    ordering_fields = ['sort_order', 'name', 'created_at']
    ordering = ['sort_order', 'name']

    def get_queryset(self):
        return self.model.objects.for_tenant(self.tenant)

    def check_object_permissions(self, request, obj):
        super().check_object_permissions(request, obj)
        if self.action in ('update', 'partial_update'):
            allowed = policies.update(request.user, obj)
        elif self.action == 'destroy':
            allowed = policies.delete(request.user, obj)
        elif self.action in ('invitation', 'generate_invitation', 'toggle_invitation'):
            allowed = policies.manage_invitation(request.user, obj)
        else:
            allowed = policies.view(request.user, obj)
        if not allowed:
            raise PermissionDenied()

    def perform_create(self, serializer):
        if not policies.create(self.request.user, self.company):
            raise PermissionDenied()
        level = self.model.level
        if not self.company.get_settings().is_level_enabled(level):
            raise ValidationError({'detail': f'{level.label}層級尚未啟用。'})
        unit = serializer.save()
        AuditService.created(unit, properties={'name': unit.name, 'slug': unit.slug}, request=self.request)

    def perform_update(self, serializer):
        unit = serializer.save()
        AuditService.updated(unit, properties={'changes': sorted(serializer.validated_data.keys())},
                             request=self.request)

    def perform_destroy(self, instance):
        blocking = [name for name in self.blocking_relations if getattr(instance, name).exists()]
        if blocking:
            raise ValidationError({
                'detail': f'{instance.name} 仍有關聯的{"、".join(self._relation_labels(blocking))}，無法刪除。'
            })
        AuditService.deleted(instance, properties={'name': instance.name, 'slug': instance.slug},
                             request=self.request)
        instance.delete()

    @staticmethod
    def _relation_labels(names):
        labels = {'users': '成員', 'departments': '部門', 'teams': '小組'}
        return [labels.get(name, name) for name in names]

    def _invitation_payload(self, unit):
        return InvitationLinkSerializer({
            'kind': unit.level.value,
            'invitation_enabled': unit.invitation_enabled,
            'invitation_token': unit.invitation_token,
            'invitation_url': invitation_url(self.company, unit) if unit.invitation_token else None,
        }).data

    @extend_schema(responses=InvitationLinkSerializer, summary='取得邀請連結 / Get invitation link')
    @action(detail=True, methods=['get'])
    def invitation(self, request, **kwargs):
        unit = self.get_object()
        return Response({'success': True, 'data': self._invitation_payload(unit)})

    @extend_schema(request=None, responses=InvitationLinkSerializer,
                   summary='產生邀請連結 / Generate invitation link')
    @action(detail=True, methods=['post'], url_path='invitation/generate')
    def generate_invitation(self, request, **kwargs):
        unit = self.get_object()
        unit.rotate_invitation_token()
        logger.info("Rotated invitation token for %s %s", unit.level, unit.pk)
        return Response({'success': True, 'message': '邀請連結已產生', 'data': self._invitation_payload(unit)})

    @extend_schema(request=InvitationToggleSerializer, responses=InvitationLinkSerializer,
                   summary='啟用或停用邀請連結 / Toggle invitation link')
    @action(detail=True, methods=['post'], url_path='invitation/toggle')
    def toggle_invitation(self, request, **kwargs):
        unit = self.get_object()
        serializer = InvitationToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        unit.set_invitation_enabled(serializer.validated_data['enabled'])
        message = '邀請連結已啟用' if unit.invitation_enabled else '邀請連結已停用'
        return Response({'success': True, 'message': message, 'data': self._invitation_payload(unit)})


@extend_schema_view(
    list=extend_schema(tags=['Organization'], summary='列出事業群 / List divisions'),
    retrieve=extend_schema(tags=['Organization'], summary='取得事業群 / Get division'),
    create=extend_schema(tags=['Organization'], summary='建立事業群 / Create division'),
    update=extend_schema(tags=['Organization'], summary='更新事業群 / Update division'),
    partial_update=extend_schema(tags=['Organization'], summary='部分更新事業群 / Partial update division'),
    destroy=extend_schema(tags=['Organization'], summary='刪除事業群 / Delete division'),
    invitation=extend_schema(tags=['Organization']),
    generate_invitation=extend_schema(tags=['Organization']),
    toggle_invitation=extend_schema(tags=['Organization']),
)
class DivisionViewSet(OrganizationUnitViewSet):
    model = Division
    serializer_class = DivisionSerializer
    blocking_relations = ('users', 'departments', 'teams')


@extend_schema_view(
    list=extend_schema(tags=['Organization'], summary='列出部門 / List departments'),
    retrieve=extend_schema(tags=['Organization'], summary='取得部門 / Get department'),
    create=extend_schema(tags=['Organization'], summary='建立部門 / Create department'),
    update=extend_schema(tags=['Organization'], summary='更新部門 / Update department'),
    partial_update=extend_schema(tags=['Organization'], summary='部分更新部門 / Partial update department'),
    destroy=extend_schema(tags=['Organization'], summary='刪除部門 / Delete department'),
    invitation=extend_schema(tags=['Organization']),
    generate_invitation=extend_schema(tags=['Organization']),
    toggle_invitation=extend_schema(tags=['Organization']),
)
class DepartmentViewSet(OrganizationUnitViewSet):
    model = Department
    serializer_class = DepartmentSerializer
    blocking_relations = ('users', 'teams')

    def get_queryset(self):
        return super().get_queryset().select_related('division')


@extend_schema_view(
    list=extend_schema(tags=['Organization'], summary='列出小組 / List teams'),
    retrieve=extend_schema(tags=['Organization'], summary='取得小組 / Get team'),
    create=extend_schema(tags=['Organization'], summary='建立小組 / Create team'),
    update=extend_schema(tags=['Organization'], summary='更新小組 / Update team'),
    partial_update=extend_schema(tags=['Organization'], summary='部分更新小組 / Partial update team'),
    destroy=extend_schema(tags=['Organization'], summary='刪除小組 / Delete team'),
    invitation=extend_schema(tags=['Organization']),
    generate_invitation=extend_schema(tags=['Organization']),
    toggle_invitation=extend_schema(tags=['Organization']),
)
class TeamViewSet(OrganizationUnitViewSet):
    model = Team
    serializer_class = TeamSerializer
    blocking_relations = ('users',)

    def get_queryset(self):
        return super().get_queryset().select_related('division', 'department')


class OrganizationTreeView(TenantAPIView):
    """
    GET /{company}/organization/
    """

    @extend_schema(
        tags=['Organization'],
        summary='組織結構 / Organization tree',
        description='事業群、部門、小組與成員數。\n\nDivisions, departments and teams with member counts.'
    )
    def get(self, request, **kwargs):
        company = self.company
        divisions = Division.objects.for_tenant(company).annotate(members_count=Count('users'))
        departments = Department.objects.for_tenant(company).annotate(members_count=Count('users'))
        teams = Team.objects.for_tenant(company).annotate(members_count=Count('users'))

        def node(unit, **extra):
            return {
                'id': str(unit.id),
                'name': unit.name,
                'slug': unit.slug,
                'sort_order': unit.sort_order,
                'is_active': unit.is_active,
                'members_count': unit.members_count,
                **extra,
            }

        def team_nodes(**filters):
            return [node(team) for team in teams if all(getattr(team, k) == v for k, v in filters.items())]

        def department_nodes(division_id):
            return [
                node(department, teams=team_nodes(department_id=department.pk))
                for department in departments if department.division_id == division_id
            ]

        tree = [
            node(division,
                 departments=department_nodes(division.pk),
                 teams=team_nodes(division_id=division.pk, department_id=None))
            for division in divisions
        ]

        return Response({
            'success': True,
            'data': {
                'levels': company.get_settings().get_enabled_levels(),
                'divisions': tree,
                'departments': department_nodes(None),
                'teams': team_nodes(division_id=None, department_id=None),
            }
        })
