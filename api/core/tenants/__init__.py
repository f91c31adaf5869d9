"""
Tenant Layer
============
Tenant resolution, request-scoped tenant context and row-level scoping.

Import models from ``core.tenants.models`` and helpers from their own
modules; this package does not re-export them to stay import-cycle free.
"""
