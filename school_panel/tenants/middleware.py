"""
TenantMiddleware resolves the school from the request and stores it in request.tenant.

Resolution:
  1. kabulonga.schoolpanel.app -> Tenant(slug='kabulonga')    (subdomain)
  2. schoolpanel.app / unknown host -> no tenant
  3. localhost / testserver -> X-Tenant-ID header (slug), development only

SECURITY: the X-Tenant-ID header is ignored for any host outside
TENANT_HEADER_HOSTS. Only the hostname selects the tenant in production.

The membership of the user is bound later, after DRF authentication
(see mixins.bind_request_tenant): JWT users are still anonymous here.
"""

import logging
import time

from django.conf import settings as django_settings

from .context import clear_current_tenant, set_current_tenant

logger = logging.getLogger(__name__)


class TenantMiddleware:
    """
    Place after AuthenticationMiddleware.

    Sets:
      - request.tenant            = Tenant instance (or None)
      - request.tenant_membership = None (filled in by the views)
    """

    # key -> (tenant, timestamp)
    _tenant_cache = {}

    SKIP_PATHS = ('/admin/', '/api/health/')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        tenant = self._resolve_tenant(request)
        request.tenant = tenant
        request.tenant_membership = None
        set_current_tenant(tenant)

        try:
            response = self.get_response(request)
        finally:
            clear_current_tenant()

        return response

    def _resolve_tenant(self, request):
        path = request.path
        if path.startswith(self.SKIP_PATHS):
            return None

        host = request.get_host().split(':')[0].lower()
        header_slug = request.META.get('HTTP_X_TENANT_ID', '').strip().lower()

        header_hosts = getattr(django_settings, 'TENANT_HEADER_HOSTS', ['localhost', '127.0.0.1'])
        if host in header_hosts:
            if header_slug:
                return self._get_tenant_by_slug(header_slug)
            return None

        if header_slug:
            logger.warning(
                'X-Tenant-ID header "%s" ignored for non-local host "%s" '
                '(tenant is determined by hostname only)',
                header_slug, host,
            )

        slug = self._slug_from_host(host)
        if not slug:
            return None
        return self._get_tenant_by_slug(slug)

    @staticmethod
    def _slug_from_host(host):
        platform_domains = getattr(django_settings, 'PLATFORM_DOMAINS', [])
        if host in platform_domains:
            return None
        for domain in platform_domains:
            suffix = f'.{domain}'
            if host.endswith(suffix):
                slug = host[:-len(suffix)]
                # www.<domain> is a platform domain, not a school
                if slug and '.' not in slug and slug != 'www':
                    return slug
        return None

    def _get_tenant_by_slug(self, slug):
        """Looks a tenant up by slug, with a TTL cache."""
        ttl = getattr(django_settings, 'TENANT_CACHE_TTL', 300)
        cache_key = f'slug:{slug}'
        cached = self._tenant_cache.get(cache_key)
        if cached is not None:
            tenant, ts = cached
            if (time.monotonic() - ts) < ttl:
                return tenant
            self._tenant_cache.pop(cache_key, None)

        from .models import Tenant
        tenant = Tenant.objects.filter(slug=slug).first()
        if tenant is None:
            # misses are not cached: arbitrary subdomains must not grow the dict
            logger.warning(f'Tenant not found for slug: {slug}')
            return None
        self._tenant_cache[cache_key] = (tenant, time.monotonic())
        return tenant

    @classmethod
    def clear_cache(cls):
        """Called from signals whenever a Tenant row changes."""
        cls._tenant_cache.clear()
