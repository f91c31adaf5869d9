"""
Tenant Middleware
=================
Resolves the tenant for each request and enforces the tenant IP whitelist.

Add to MIDDLEWARE in settings.py, in this order:
    'core.tenants.middleware.TenantMiddleware',
    'core.tenants.middleware.IpWhitelistMiddleware',
"""

import logging

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from django.utils.translation import gettext_lazy as _

from .conf import tenant_setting
from .context import TenantContext, activate_tenant, deactivate_tenant
from .ip_matcher import matches
from .resolver import resolve_slug

logger = logging.getLogger(__name__)


def get_company_model():
    """Lazy import of Company model"""
    from .models import Company
    return Company


def client_ip(request):
    """Return the observed client address, or None when it cannot be determined."""
    if tenant_setting('TRUST_FORWARDED_FOR'):
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
        first_hop = forwarded.split(',')[0].strip()
        if first_hop:
            return first_hop
    return request.META.get('REMOTE_ADDR') or None


class TenantMiddleware(MiddlewareMixin):
    """
    Middleware to resolve the tenant for each request.

    Tenant is determined by (first match wins):
    1. A Company already bound to the ``company`` route kwarg
    2. The ``company`` route kwarg as a slug
    3. The ``company_slug`` route kwarg
    4. The leftmost subdomain label (only when TENANT_SLUG_MODE=subdomain)

    A slug that matches no company answers 404; a company that is not
    active answers 423. Requests with nothing to resolve pass through with
    ``request.tenant = None`` (the HQ surface relies on this).
    """

    def process_request(self, request):
        request.tenant = None
        request.tenant_company = None
        request._tenant_token = None
        return None

    def process_view(self, request, view_func, view_args, view_kwargs):
        company, slug = resolve_slug(request, view_kwargs)

        if company is None and not slug:
            return None

        if company is None:
            Company = get_company_model()
            company = Company.objects.select_related('settings').filter(slug=slug).first()

        if company is None:
            logger.warning("Tenant not found for slug %r on %s", slug, request.path)
            return JsonResponse({
                'error': 'tenant_not_found',
                'message': _('Tenant not found.')
            }, status=404)

        if not company.is_operational:
            logger.warning("Rejected request for non-active tenant %s (%s)", company.slug, company.status)
            return JsonResponse({
                'error': 'tenant_suspended',
                'message': _('Tenant has been suspended.')
            }, status=423)

        context = TenantContext.from_company(company)
        request.tenant = context
        request.tenant_company = company
        request._tenant_token = activate_tenant(context)
        return None

    def process_response(self, request, response):
        """Deactivate the tenant context after the response"""
        token = getattr(request, '_tenant_token', None)
        if token is not None:
            deactivate_tenant(token)
            request._tenant_token = None
        return response


class IpWhitelistMiddleware(MiddlewareMixin):
    """
    Reject tenant requests whose client IP is outside the tenant whitelist.

    Runs after TenantMiddleware; requests without a tenant are not gated.
    """

    def process_view(self, request, view_func, view_args, view_kwargs):
        context = getattr(request, 'tenant', None)
        if context is None:
            return None

        whitelist = context.ip_whitelist
        if not whitelist:
            return None

        ip = client_ip(request)
        if not ip:
            return JsonResponse({
                'error': 'client_ip_unresolved',
                'message': _('Unable to determine client IP address.')
            }, status=403)

        if matches(ip, whitelist):
            return None

        logger.warning("IP %s rejected by whitelist of tenant %s", ip, context.slug)
        self._audit_rejection(request, ip)
        return JsonResponse({
            'error': 'ip_not_whitelisted',
            'message': _('Your IP address is not allowed to access this tenant.')
        }, status=403)

    def _audit_rejection(self, request, ip):
        from core.services.audit_service import AuditService

        company = getattr(request, 'tenant_company', None)
        if company is None:
            return
        AuditService.ip_whitelist_rejected(
            company.get_settings(),
            ip,
            request=request,
            company_id=company.pk,
        )
