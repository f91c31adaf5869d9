"""
Tenant Slug Resolution
======================
Finds the tenant slug for a request from route kwargs or the host name.
"""

from typing import Optional

from .conf import tenant_setting


def slug_from_host(host: Optional[str], primary_domain: Optional[str] = None) -> Optional[str]:
    """
    Return the leftmost label of ``host`` when it is a subdomain of the
    primary domain, else None.

    ``acme.timesheet-saas.test`` -> ``acme``; the primary domain itself, the HQ portal host
    and unrelated hosts never yield a slug.
    """
    if not host:
        return None
    primary = (primary_domain or tenant_setting('PRIMARY_DOMAIN') or '').lower().strip('.')
    if not primary:
        return None

    host = host.split(':', 1)[0].lower().strip('.')
    if host == primary:
        return None
    hq_domain = (tenant_setting('HQ_PORTAL_DOMAIN') or '').lower().strip('.')
    if hq_domain and host == hq_domain:
        return None
    if not host.endswith('.' + primary):
        return None

    host_labels = host.split('.')
    if len(host_labels) <= len(primary.split('.')):
        return None

    slug = host_labels[0]
    return slug or None


def resolve_slug(request, view_kwargs) -> tuple:
    """
    Resolve the tenant for a request.

    Returns ``(company, slug)``: ``company`` is set only when a Company
    instance was already bound to the route; otherwise ``slug`` may be set.
    """
    from .models import Company

    bound = view_kwargs.get('company')
    if isinstance(bound, Company):
        return bound, bound.slug

    if isinstance(bound, str) and bound:
        return None, bound

    company_slug = view_kwargs.get('company_slug')
    if isinstance(company_slug, str) and company_slug:
        return None, company_slug

    if tenant_setting('SLUG_MODE') == 'subdomain':
        host = request.META.get('HTTP_HOST') or request.META.get('SERVER_NAME')
        return None, slug_from_host(host)

    return None, None
