"""
Request metrics: one structured log line per request.
"""
import logging
import time

from django.conf import settings
from django.utils.deprecation import MiddlewareMixin

from school_panel.sentry_config import set_user_context

logger = logging.getLogger('request_metrics')


class RequestMetricsMiddleware(MiddlewareMixin):
    """
    Logs method, path, status, duration, user and school of every request,
    adds the X-Request-Duration header and warns about slow requests
    (SLOW_REQUEST_SECONDS).
    """

    def process_request(self, request):
        request._start_time = time.monotonic()

    def process_response(self, request, response):
        start = getattr(request, '_start_time', None)
        if start is None:
            return response

        duration = time.monotonic() - start
        user = getattr(request, 'user', None)
        user_id = user.id if user is not None and user.is_authenticated else 'anonymous'
        tenant = getattr(request, 'tenant', None)
        tenant_slug = tenant.slug if tenant is not None else '-'

        set_user_context(user, tenant)

        logger.info(
            f'method={request.method} path={request.path} status={response.status_code} '
            f'duration={duration:.3f}s user={user_id} tenant={tenant_slug} ip={self.get_client_ip(request)}'
        )
        response['X-Request-Duration'] = f'{duration:.3f}'

        if duration > getattr(settings, 'SLOW_REQUEST_SECONDS', 2.0):
            logger.warning(
                f'SLOW_REQUEST: {request.method} {request.path} took {duration:.3f}s '
                f'(user={user_id}, tenant={tenant_slug})'
            )
        return response

    @staticmethod
    def get_client_ip(request):
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
        if forwarded:
            return forwarded.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR', 'unknown')
