"""
Tenant Context
==============
Immutable, request-scoped description of the resolved tenant.

The middleware builds one ``TenantContext`` per request, attaches it to
``request.tenant`` and activates it with ``tenant_scope`` for the lifetime of
that request. Activation uses a ``ContextVar``, so concurrent requests served
by different threads or tasks never observe each other's tenant.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

_current_tenant: ContextVar[Optional['TenantContext']] = ContextVar('current_tenant', default=None)


def _freeze(value):
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


@dataclass(frozen=True)
class TenantContext:
    """Snapshot of a company and its settings for one request."""
    company_id: Any
    slug: str
    name: str = ''
    status: str = 'active'
    timezone: str = 'Asia/Taipei'
    user_limit: int = 0
    current_user_count: int = 0
    settings: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_company(cls, company, company_settings=None) -> 'TenantContext':
        if company_settings is None:
            company_settings = company.get_settings()
        snapshot = {
            'login_ip_whitelist': list(company_settings.login_ip_whitelist or []),
            'notification_preferences': dict(company_settings.notification_preferences or {}),
            'organization_levels': list(company_settings.get_enabled_levels()),
            'settings_id': str(company_settings.pk) if company_settings.pk else None,
        }
        return cls(
            company_id=company.pk,
            slug=company.slug,
            name=company.name,
            status=company.status,
            timezone=company.timezone,
            user_limit=company.user_limit,
            current_user_count=company.current_user_count,
            settings=_freeze(snapshot),
        )

    @property
    def is_active(self) -> bool:
        return self.status == 'active'

    @property
    def ip_whitelist(self):
        return list(self.settings.get('login_ip_whitelist', ()))

    def to_dict(self) -> dict:
        return {
            'company_id': str(self.company_id),
            'slug': self.slug,
            'name': self.name,
            'status': self.status,
            'timezone': self.timezone,
            'user_limit': self.user_limit,
            'current_user_count': self.current_user_count,
            'is_active': self.is_active,
        }


def get_current_tenant() -> Optional[TenantContext]:
    """Return the tenant context active in the current execution context."""
    return _current_tenant.get()


@contextmanager
def tenant_scope(context: Optional[TenantContext]):
    """
    Activate ``context`` for the enclosed block.

    Usage:
        with tenant_scope(request.tenant):
            WeeklyReport.objects.all()  # filtered to the tenant
    """
    token = _current_tenant.set(context)
    try:
        yield context
    finally:
        _current_tenant.reset(token)


def activate_tenant(context: Optional[TenantContext]):
    """Activate ``context`` and return the token needed to deactivate it."""
    return _current_tenant.set(context)


def deactivate_tenant(token) -> None:
    _current_tenant.reset(token)


def company_id_of(target) -> Any:
    """Accept a TenantContext, a Company or a raw id and return the company id."""
    if target is None:
        return None
    if isinstance(target, TenantContext):
        return target.company_id
    return getattr(target, 'pk', target)
