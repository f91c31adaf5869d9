"""
Tenancy Settings Access
=======================
Reads the ``TENANCY`` dict from Django settings with safe defaults.
"""

from django.conf import settings

DEFAULTS = {
    'SLUG_MODE': 'subdomain',
    'PRIMARY_DOMAIN': 'timesheet-saas.test',
    'HQ_PORTAL_DOMAIN': 'hq.timesheet-saas.test',
    'API_PREFIX': 'api/v1',
    'STATEFUL_DOMAINS': [],
    'TRUST_FORWARDED_FOR': False,
    'REGISTRATION_ENABLED': True,
    'REGISTRATION_REQUIRES_EMAIL_VERIFICATION': False,
    'INVITATION_TTL_DAYS': 7,
}


def tenant_setting(name):
    """Return a tenancy setting, falling back to the built-in default."""
    configured = getattr(settings, 'TENANCY', {}) or {}
    if name in configured:
        return configured[name]
    return DEFAULTS[name]
