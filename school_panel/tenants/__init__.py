"""
Tenants app: one school = one tenant.

Shared schema: school-level models carry a tenant FK.
Resolution by subdomain: kabulonga.schoolpanel.app -> Tenant(slug='kabulonga').
"""
