"""
Tenant View Mixins
==================
Base classes for API views nested under ``/{company}/``.
"""

from rest_framework.exceptions import NotFound
from rest_framework.generics import GenericAPIView
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from core.permissions import IsTenantMember
from core.throttling import TenantAnonRateThrottle, TenantUserRateThrottle


class TenantViewMixin:
    """
    Gives a view ``self.tenant`` (the TenantContext) and ``self.company``
    (the Company row) and applies tenant membership + tenant throttling.

    The ``company`` URL kwarg is consumed by TenantMiddleware; handlers
    receive it but never need to look it up again.
    """
    permission_classes = [IsTenantMember]
    throttle_classes = [TenantUserRateThrottle, TenantAnonRateThrottle]

    @property
    def tenant(self):
        tenant = getattr(self.request, 'tenant', None)
        if tenant is None:
            raise NotFound('Tenant not found.')
        return tenant

    @property
    def company(self):
        company = getattr(self.request, 'tenant_company', None)
        if company is None:
            raise NotFound('Tenant not found.')
        return company

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['company'] = getattr(self.request, 'tenant_company', None)
        return context


class TenantAPIView(TenantViewMixin, APIView):
    def get_serializer_context(self):
        return {
            'request': self.request,
            'view': self,
            'company': getattr(self.request, 'tenant_company', None),
        }


class TenantGenericAPIView(TenantViewMixin, GenericAPIView):
    pass


class TenantGenericViewSet(TenantViewMixin, GenericViewSet):
    pass
