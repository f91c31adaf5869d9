"""
Auth Views
==========
Sign-up, current-user profile and the tenant invitation flows.
"""
import logging
from datetime import timedelta

from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.models import Company
from core.tenants.conf import tenant_setting
from core.tenants.mixins import TenantAPIView
from core.throttling import TenantAnonRateThrottle
from . import services
from .models import RegisteredVia
from .serializers import (
    AuthTokensSerializer,
    InvitationAcceptSerializer,
    RegisterByInvitationSerializer,
    RegisterSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    """
    POST /auth/register/

    Without ``company_slug`` a new company is created with the caller as its
    admin; with ``company_slug`` the caller joins that company as a member.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [TenantAnonRateThrottle]

    @extend_schema(
        tags=['Authentication'],
        request=RegisterSerializer,
        responses={201: AuthTokensSerializer},
        summary='註冊 / Register',
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data.get('company_slug'):
            if not tenant_setting('REGISTRATION_ENABLED'):
                raise ValidationError({'company_slug': '此公司目前不開放註冊。'})
            company = Company.objects.filter(slug=data['company_slug']).first()
            if company is None:
                raise ValidationError({'company_slug': '找不到指定的公司。'})
            user = services.register_tenant_member(
                company,
                full_name=data['full_name'],
                email=data['email'],
                password=data['password'],
                registered_via=RegisteredVia.TENANT_REGISTER,
            )
        else:
            user = services.register_company_admin(
                company_name=data['company_name'],
                full_name=data['full_name'],
                email=data['email'],
                password=data['password'],
            )

        return Response(services.issue_tokens(user), status=status.HTTP_201_CREATED)


class MeView(APIView):
    """
    GET /auth/me/
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=['Authentication'], responses=UserSerializer, summary='目前使用者 / Current user')
    def get(self, request):
        user = request.user
        user.last_active_at = timezone.now()
        user.save(update_fields=['last_active_at'])
        return Response(UserSerializer(user).data)


# =================================================================
# Tenant invitation flows (mounted under /{company}/auth/)
# =================================================================

class TenantPublicAPIView(TenantAPIView):
    """Tenant-scoped endpoint reachable without signing in"""
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [TenantAnonRateThrottle]


class InvitationPreviewView(TenantPublicAPIView):
    """
    GET /{company}/auth/invitations/{token}/
    """

    @extend_schema(tags=['Members'], summary='預覽邀請 / Preview invitation')
    def get(self, request, token, **kwargs):
        user = services.find_invited_member(self.company, token)
        if user is None:
            raise NotFound('邀請不存在或已被使用。')
        expires_at = user.invitation_sent_at + timedelta(days=tenant_setting('INVITATION_TTL_DAYS'))
        return Response({
            'success': True,
            'data': {
                'email': user.email,
                'full_name': user.full_name,
                'role': user.role,
                'company': {'name': self.company.name, 'slug': self.company.slug},
                'expires_at': expires_at,
                'expired': user.invitation_expired(),
            }
        })


class InvitationAcceptView(TenantPublicAPIView):
    """
    POST /{company}/auth/invitations/accept/
    """

    @extend_schema(
        tags=['Members'],
        request=InvitationAcceptSerializer,
        responses=AuthTokensSerializer,
        summary='接受邀請 / Accept invitation',
    )
    def post(self, request, **kwargs):
        serializer = InvitationAcceptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = services.find_invited_member(self.company, serializer.validated_data['token'])
        if user is None:
            raise NotFound('邀請不存在或已被使用。')
        if user.invitation_expired():
            return Response(
                {'error': 'invitation_expired', 'message': '此邀請已過期，請聯繫管理員重新邀請。'},
                status=status.HTTP_410_GONE
            )

        user.accept_invitation(serializer.validated_data['password'])
        logger.info("Invitation accepted by %s for company %s", user.email, self.company.slug)
        return Response(services.issue_tokens(user))


class RegisterByInvitationView(TenantPublicAPIView):
    """
    POST /{company}/auth/register-by-invitation/
    """

    @extend_schema(
        tags=['Members'],
        request=RegisterByInvitationSerializer,
        responses={201: AuthTokensSerializer},
        summary='透過組織邀請連結註冊 / Register by organization invitation link',
    )
    def post(self, request, **kwargs):
        serializer = RegisterByInvitationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        unit = services.find_organization_invitation(self.company, data['token'], data['type'])
        if unit is None:
            raise ValidationError({'token': '邀請連結無效或已停用。'})

        user = services.register_tenant_member(
            self.company,
            full_name=data['name'],
            email=data['email'],
            password=data['password'],
            registered_via=RegisteredVia.INVITATION_LINK,
            unit=unit,
        )
        return Response(services.issue_tokens(user), status=status.HTTP_201_CREATED)
