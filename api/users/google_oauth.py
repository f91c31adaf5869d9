"""
Google OAuth 2.0 Authentication
===============================
Redirect/callback flow for Google sign-in.

The registration intent (register, login, tenant_register, invitation,
organization_invitation) travels through Google inside the OAuth ``state``
parameter as a signed, timestamped token, so the callback does not depend on
server-side session continuity.
"""
import logging
from urllib.parse import urlencode

import requests
from django.conf import settings
from django.core import signing
from django.shortcuts import redirect
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import serializers, status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.models import Company
from .models import User, RegisteredVia
from . import services

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = 'https://accounts.google.com/o/oauth2/v2/auth'
GOOGLE_TOKEN_URL = 'https://oauth2.googleapis.com/token'
GOOGLE_USERINFO_URL = 'https://www.googleapis.com/oauth2/v2/userinfo'

STATE_SALT = 'users.google_oauth.state'
INTENTS = ['register', 'login', 'tenant_register', 'invitation', 'organization_invitation']


class GoogleOAuthError(Exception):
    """Google rejected the code or returned an unusable profile"""


def sign_state(intent='register', company_slug=None, invitation_token=None, organization_invitation=None) -> str:
    return signing.dumps(
        {
            'intent': intent,
            'company_slug': company_slug,
            'invitation_token': invitation_token,
            'organization_invitation': organization_invitation,
        },
        salt=STATE_SALT,
        compress=True,
    )


def read_state(state: str) -> dict:
    """Raises ``signing.BadSignature`` (or its ``SignatureExpired`` subclass)."""
    max_age = getattr(settings, 'GOOGLE_OAUTH_STATE_MAX_AGE', 600)
    return signing.loads(state, salt=STATE_SALT, max_age=max_age)


def authorize_url(state: str) -> str:
    query = urlencode({
        'client_id': settings.GOOGLE_OAUTH_CLIENT_ID,
        'redirect_uri': settings.GOOGLE_OAUTH_REDIRECT_URI,
        'response_type': 'code',
        'scope': 'openid email profile',
        'access_type': 'online',
        'prompt': 'select_account',
        'state': state,
    })
    return f"{GOOGLE_AUTHORIZE_URL}?{query}"


def exchange_code_for_tokens(code: str) -> dict:
    response = requests.post(
        GOOGLE_TOKEN_URL,
        data={
            'code': code,
            'client_id': settings.GOOGLE_OAUTH_CLIENT_ID,
            'client_secret': settings.GOOGLE_OAUTH_CLIENT_SECRET,
            'redirect_uri': settings.GOOGLE_OAUTH_REDIRECT_URI,
            'grant_type': 'authorization_code',
        },
        timeout=15,
    )
    if response.status_code != 200:
        raise GoogleOAuthError('Failed to exchange code for tokens')
    return response.json()


def fetch_user_info(access_token: str) -> dict:
    response = requests.get(
        GOOGLE_USERINFO_URL,
        headers={'Authorization': f'Bearer {access_token}'},
        timeout=15,
    )
    if response.status_code != 200:
        raise GoogleOAuthError('Failed to get user info from Google')
    info = response.json()
    if not info.get('email') or not info.get('id'):
        raise GoogleOAuthError('Email not provided by Google')
    return info


class GoogleAuthService:
    """
    Resolve the local user for a Google profile under a registration context.
    """

    def __init__(self, context: dict):
        self.context = context or {}
        self.intent = self.context.get('intent') or 'register'

    def handle(self, info: dict) -> User:
        google_id = str(info['id'])
        email = info['email']
        name = info.get('name') or email.split('@')[0]
        avatar = info.get('picture')

        user = User.objects.filter(google_id=google_id).first()
        if user is not None:
            user.full_name = name
            user.avatar_url = avatar
            user.email_verified_at = timezone.now()
            user.save(update_fields=['full_name', 'avatar_url', 'email_verified_at', 'updated_at'])
            return user

        if self.intent == 'invitation' and self.context.get('invitation_token') and self.context.get('company_slug'):
            return self._accept_invitation(info)

        existing = User.objects.filter(email__iexact=email).first()
        if existing is not None:
            existing.google_id = google_id
            existing.avatar_url = avatar
            if existing.email_verified_at is None:
                existing.email_verified_at = timezone.now()
            existing.save(update_fields=['google_id', 'avatar_url', 'email_verified_at', 'updated_at'])
            logger.info("Google account linked to existing user %s", existing.pk)
            return existing

        if self.intent == 'login':
            raise ValidationError({'email': '找不到此電子郵件的帳號，請先註冊。'})

        profile = {'full_name': name, 'email': email, 'google_id': google_id, 'avatar_url': avatar}

        if self.intent == 'tenant_register' and self.context.get('company_slug'):
            company = self._company(self.context['company_slug'])
            user = services.register_tenant_member(
                company, registered_via=RegisteredVia.GOOGLE_TENANT_REGISTER, **profile
            )
        elif self.intent == 'organization_invitation' and self.context.get('organization_invitation'):
            user = self._register_by_organization_invitation(profile)
        else:
            user = services.register_company_admin(
                company_name=f"{name}'s Company",
                registered_via=RegisteredVia.GOOGLE_SELF_REGISTER,
                **profile
            )

        user.email_verified_at = timezone.now()
        user.save(update_fields=['email_verified_at', 'updated_at'])
        return user

    @staticmethod
    def _company(slug) -> Company:
        company = Company.objects.filter(slug=slug).first()
        if company is None:
            raise ValidationError({'company_slug': '找不到指定的公司。'})
        return company

    def _accept_invitation(self, info) -> User:
        company = self._company(self.context['company_slug'])
        user = services.find_invited_member(company, self.context['invitation_token'])
        if user is None:
            raise ValidationError({'token': '邀請不存在或已被使用。'})
        if user.email.lower() != info['email'].lower():
            raise ValidationError({'email': '電子郵件與邀請不符。'})
        if user.invitation_expired():
            raise ValidationError({'token': '此邀請已過期。'})

        now = timezone.now()
        user.google_id = str(info['id'])
        user.avatar_url = info.get('picture')
        user.invitation_token = None
        user.invitation_accepted_at = now
        user.email_verified_at = now
        user.save()
        return user

    def _register_by_organization_invitation(self, profile) -> User:
        invitation = self.context['organization_invitation'] or {}
        company = self._company(invitation.get('company_slug'))
        unit = services.find_organization_invitation(company, invitation.get('token'), invitation.get('type'))
        if unit is None:
            raise ValidationError({'token': '邀請連結無效或已停用。'})
        return services.register_tenant_member(
            company, registered_via=RegisteredVia.GOOGLE_INVITATION_LINK, unit=unit, **profile
        )


class GoogleRedirectQuerySerializer(serializers.Serializer):
    intent = serializers.ChoiceField(choices=INTENTS, default='register')
    company_slug = serializers.SlugField(required=False, allow_blank=True)
    invitation_token = serializers.CharField(required=False, allow_blank=True, max_length=64)
    organization_invitation_token = serializers.CharField(required=False, allow_blank=True, max_length=64)
    organization_invitation_type = serializers.ChoiceField(
        choices=['division', 'department', 'team'], required=False
    )


class GoogleCallbackSerializer(serializers.Serializer):
    code = serializers.CharField()
    state = serializers.CharField()


class GoogleOAuthRedirectView(APIView):
    """Build the Google authorize URL carrying a signed registration context"""
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        tags=['Authentication'],
        parameters=[GoogleRedirectQuerySerializer],
        summary='Google 登入網址 / Google sign-in URL',
    )
    def get(self, request):
        if not settings.GOOGLE_OAUTH_CLIENT_ID:
            return Response(
                {'error': 'Google OAuth not configured'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        serializer = GoogleRedirectQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        organization_invitation = None
        if data['intent'] == 'organization_invitation':
            organization_invitation = {
                'company_slug': data.get('company_slug'),
                'token': data.get('organization_invitation_token'),
                'type': data.get('organization_invitation_type'),
            }

        state = sign_state(
            intent=data['intent'],
            company_slug=data.get('company_slug') or None,
            invitation_token=data.get('invitation_token') or None,
            organization_invitation=organization_invitation,
        )
        logger.info(
            "Redirecting to Google OAuth (intent=%s, company=%s)",
            data['intent'], data.get('company_slug') or '-'
        )
        return Response({'url': authorize_url(state)})


class GoogleOAuthCallbackView(APIView):
    """Handle the Google OAuth callback"""
    permission_classes = [AllowAny]
    authentication_classes = []

    def _authenticate(self, code, state):
        context = read_state(state)
        token_data = exchange_code_for_tokens(code)
        info = fetch_user_info(token_data['access_token'])
        user = GoogleAuthService(context).handle(info)
        logger.info("Google OAuth callback succeeded for user %s (intent=%s)", user.pk, context.get('intent'))
        return user

    @extend_schema(
        tags=['Authentication'],
        parameters=[
            OpenApiParameter('code', str, required=False),
            OpenApiParameter('state', str, required=False),
            OpenApiParameter('error', str, required=False),
        ],
        responses={302: None},
        summary='Google 回呼（瀏覽器） / Google callback (browser)',
    )
    def get(self, request):
        frontend_url = getattr(settings, 'FRONTEND_URL', 'http://localhost:3000').rstrip('/')
        error = request.query_params.get('error')
        code = request.query_params.get('code')
        state = request.query_params.get('state')

        if error or not code or not state:
            logger.warning("Google OAuth callback without code (error=%s)", error)
            return redirect(f"{frontend_url}/auth/sign-in?{urlencode({'error': error or 'missing_code'})}")

        try:
            user = self._authenticate(code, state)
        except signing.BadSignature:
            logger.warning("Google OAuth callback with invalid or expired state")
            return redirect(f"{frontend_url}/auth/sign-in?error=invalid_state")
        except (GoogleOAuthError, requests.RequestException) as exc:
            logger.warning("Google OAuth exchange failed: %s", exc)
            return redirect(f"{frontend_url}/auth/sign-in?error=google_failed")
        except ValidationError as exc:
            logger.warning("Google OAuth validation failed: %s", exc.detail)
            return redirect(f"{frontend_url}/auth/sign-in?error=registration_rejected")

        tokens = services.issue_tokens(user)
        return redirect(
            f"{frontend_url}/auth/callback?{urlencode({'access': tokens['access'], 'refresh': tokens['refresh']})}"
        )

    @extend_schema(
        tags=['Authentication'],
        request=GoogleCallbackSerializer,
        summary='Google 回呼（前端） / Google callback (frontend)',
    )
    def post(self, request):
        serializer = GoogleCallbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = self._authenticate(serializer.validated_data['code'], serializer.validated_data['state'])
        except signing.BadSignature:
            logger.warning("Google OAuth callback with invalid or expired state")
            return Response({'error': 'invalid_state'}, status=status.HTTP_400_BAD_REQUEST)
        except (GoogleOAuthError, requests.RequestException) as exc:
            logger.warning("Google OAuth exchange failed: %s", exc)
            return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(services.issue_tokens(user))
