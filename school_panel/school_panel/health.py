"""
Probe endpoints for load balancers and container orchestration.

/api/health/       readiness: database, cache and required settings
/api/health/live/  liveness: the worker answers at all
"""
import time

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

REQUIRED_SETTINGS = ('SECRET_KEY', 'ALLOWED_HOSTS', 'AUTH_USER_MODEL', 'PLATFORM_DOMAINS')


def _check_database():
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
    except DatabaseError as e:
        return f'error: {str(e)[:100]}'
    return 'ok'


def _check_cache():
    cache.set('health:ping', 1, timeout=5)
    return 'ok' if cache.get('health:ping') == 1 else 'error: cache did not return the probe value'


def _check_settings():
    missing = [name for name in REQUIRED_SETTINGS if not getattr(settings, name, None)]
    return f'missing: {", ".join(missing)}' if missing else 'ok'


def health_check(request):
    """
    GET /api/health/

    Returns 200 when every check reports "ok", otherwise 503 with the failing
    check's message.
    """
    checks = {
        'database': _check_database(),
        'cache': _check_cache(),
        'settings': _check_settings(),
    }
    healthy = all(result == 'ok' for result in checks.values())
    return JsonResponse(
        {
            'status': 'healthy' if healthy else 'unhealthy',
            'timestamp': time.time(),
            'checks': checks,
        },
        status=200 if healthy else 503,
    )


def live_check(request):
    return JsonResponse({'alive': True, 'timestamp': time.time()})
