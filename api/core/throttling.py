"""
Tenant Rate Limiting
====================
Per-tenant, per-user request throttling for the tenant API group.

The cache key is ``tenant:{companyId}:user:{userId}`` so that the same user
gets separate budgets on separate tenants. Rates come from the
``tenant`` / ``tenant_anon`` entries of ``DEFAULT_THROTTLE_RATES``.
"""
from rest_framework.throttling import SimpleRateThrottle


class TenantUserRateThrottle(SimpleRateThrottle):
    scope = 'tenant'

    def get_cache_key(self, request, view):
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            return None

        tenant = getattr(request, 'tenant', None)
        company_id = tenant.company_id if tenant is not None else getattr(user, 'company_id', None)
        return f"tenant:{company_id or 'none'}:user:{user.pk}"


class TenantAnonRateThrottle(SimpleRateThrottle):
    """Throttle unauthenticated tenant requests by client IP"""
    scope = 'tenant_anon'

    def get_cache_key(self, request, view):
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            return None

        tenant = getattr(request, 'tenant', None)
        company_id = tenant.company_id if tenant is not None else 'none'
        return f"tenant:{company_id}:anon:{self.get_ident(request)}"
