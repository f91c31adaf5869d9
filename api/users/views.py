"""
Member Views
============
Tenant member listing, invitations and role assignment.
"""
import logging

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter
from rest_framework import mixins, status
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response

from core.permissions import IsCompanyAdmin, IsTenantManager
from core.services.audit_service import AuditService
from core.tenants.mixins import TenantGenericViewSet
from . import policies, services
from .filters import MemberFilter
from .models import User
from .serializers import MemberSerializer, MemberInviteSerializer, MemberRoleSerializer

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(
        tags=['Members'],
        summary='列出成員 / List members',
        description='依角色範圍列出成員。\n\nList members visible to the caller\'s role.',
        parameters=[OpenApiParameter('keyword', str, description='姓名或信箱 / Name or email')],
    ),
    invite=extend_schema(
        tags=['Members'],
        request=MemberInviteSerializer,
        responses={201: MemberSerializer},
        summary='邀請成員 / Invite member',
    ),
    roles=extend_schema(
        tags=['Members'],
        request=MemberRoleSerializer,
        responses=MemberSerializer,
        summary='更新成員角色 / Update member role',
    ),
    approve=extend_schema(tags=['Members'], request=None, summary='核准成員 / Approve member'),
)
class MemberViewSet(mixins.ListModelMixin, TenantGenericViewSet):
    """
    list:    GET  /{company}/members/
    invite:  POST /{company}/members/invite/
    roles:   PUT  /{company}/members/{id}/roles/
    approve: POST /{company}/members/{id}/approve/
    """
    serializer_class = MemberSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = MemberFilter

    def get_permissions(self):
        if self.action == 'roles':
            return [IsCompanyAdmin()]
        return [IsTenantManager()]

    def get_queryset(self):
        queryset = User.objects.for_tenant(self.tenant).select_related('division', 'department', 'team')
        if self.action == 'list':
            return policies.visible_members(self.request.user, queryset).order_by('full_name', 'email')
        return queryset

    def _hierarchy(self, data):
        return services.resolve_hierarchy(
            self.company,
            division=data.get('division_id'),
            department=data.get('department_id'),
            team=data.get('team_id'),
        )

    @action(detail=False, methods=['post'])
    def invite(self, request, **kwargs):
        serializer = MemberInviteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        hierarchy = self._hierarchy(data)
        services.check_role_requirements(data['role'], hierarchy)
        services.check_inviter_scope(request.user, data['role'], hierarchy)

        member = services.invite_member(
            self.company,
            request.user,
            email=data['email'],
            full_name=data['full_name'],
            role=data['role'],
            hierarchy=hierarchy,
        )
        AuditService.created(member, description='邀請成員', properties={'role': member.role}, request=request)
        return Response(
            {'success': True, 'message': '邀請已寄出', 'data': MemberSerializer(member).data},
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['put'])
    def roles(self, request, **kwargs):
        member = self.get_object()
        serializer = MemberRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if member.is_hq_admin:
            raise ValidationError({'detail': '無法修改總部管理員。'})
        if not policies.change_role(request.user, member):
            raise PermissionDenied()

        hierarchy = self._hierarchy(data)
        services.check_role_requirements(data['role'], hierarchy)

        old = {'role': member.role, **{k: str(v) if v else None for k, v in member.hierarchy_ids().items()}}
        services.assign_role(member, data['role'], hierarchy)
        new = {'role': member.role, **{k: str(v) if v else None for k, v in member.hierarchy_ids().items()}}

        AuditService.updated(member, description='更新成員角色', properties={'old': old, 'new': new},
                             request=request)
        return Response({'success': True, 'message': '角色已更新', 'data': MemberSerializer(member).data})

    @action(detail=True, methods=['post'])
    def approve(self, request, **kwargs):
        raise NotFound('Member approval workflow is not yet available.')
