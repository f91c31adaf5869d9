"""
Users URL Configuration
=======================
``auth_urlpatterns`` are mounted under ``api/v1/auth/``;
``urlpatterns`` under ``api/v1/<company>/``.
"""

from django.urls import path, include
from drf_spectacular.utils import extend_schema
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .auth_views import (
    InvitationAcceptView,
    InvitationPreviewView,
    MeView,
    RegisterByInvitationView,
    RegisterView,
)
from .google_oauth import GoogleOAuthCallbackView, GoogleOAuthRedirectView
from .views import MemberViewSet


# Wrap JWT views with schema decorators
class DecoratedTokenObtainPairView(TokenObtainPairView):
    @extend_schema(
        tags=['Authentication'],
        summary='獲取 JWT Token / Obtain JWT Token',
        description='使用電子郵件和密碼獲取 JWT access token 和 refresh token。\n\nObtain JWT access token and refresh token using email and password.'
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


class DecoratedTokenRefreshView(TokenRefreshView):
    @extend_schema(
        tags=['Authentication'],
        summary='刷新 JWT Token / Refresh JWT Token',
        description='使用 refresh token 獲取新的 access token。\n\nObtain new access token using refresh token.'
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)


auth_urlpatterns = [
    path('token/', DecoratedTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', DecoratedTokenRefreshView.as_view(), name='token_refresh'),
    path('register/', RegisterView.as_view(), name='auth-register'),
    path('me/', MeView.as_view(), name='auth-me'),

    # Google OAuth
    path('google/redirect/', GoogleOAuthRedirectView.as_view(), name='google-oauth-redirect'),
    path('google/callback/', GoogleOAuthCallbackView.as_view(), name='google-oauth-callback'),
]

router = DefaultRouter()
router.include_root_view = False  # Disable API root view to avoid "api" tag
router.register(r'members', MemberViewSet, basename='member')

urlpatterns = [
    path('auth/invitations/accept/', InvitationAcceptView.as_view(), name='invitation-accept'),
    path('auth/invitations/<str:token>/', InvitationPreviewView.as_view(), name='invitation-preview'),
    path('auth/register-by-invitation/', RegisterByInvitationView.as_view(), name='register-by-invitation'),
    path('', include(router.urls)),
]
