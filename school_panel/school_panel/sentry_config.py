"""
Sentry integration.

Set SENTRY_DSN in the environment to enable it; without a DSN every helper in
this module is a no-op. init_sentry() is called at the end of settings.py.
"""
import logging
import os

import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = ('password', 'token', 'secret', 'api_key', 'sms_api_key', 'sms_api_secret')


def init_sentry():
    sentry_dsn = os.environ.get('SENTRY_DSN', '')

    if not sentry_dsn:
        logger.debug("Sentry: DSN not configured, skipping initialization")
        return False

    environment = os.environ.get('DJANGO_ENV', 'production')
    if os.environ.get('DEBUG', 'False').lower() in ('true', '1', 'yes'):
        environment = 'development'

    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[
            DjangoIntegration(transaction_style='url', middleware_spans=True),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        environment=environment,
        release=os.environ.get('APP_VERSION', 'unknown'),
        traces_sample_rate=float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE', '0.1')),
        send_default_pii=False,
        ignore_errors=['django.security.DisallowedHost'],
        before_send=before_send_callback,
    )

    logger.info(f"Sentry: initialized for {environment} environment")
    return True


def before_send_callback(event, hint):
    """Drop 404s and scrub credentials from the request payload."""
    if 'exc_info' in hint:
        exc_type, _, _ = hint['exc_info']
        if exc_type.__name__ in ('Http404', 'NotFound'):
            return None

    request_data = event.get('request')
    if request_data:
        data = request_data.get('data')
        if isinstance(data, dict):
            for key in SENSITIVE_KEYS:
                if key in data:
                    data[key] = '[FILTERED]'

        headers = request_data.get('headers')
        if isinstance(headers, dict) and 'Authorization' in headers:
            headers['Authorization'] = '[FILTERED]'

    return event


def capture_exception(exception, extra=None):
    """Report an exception that was handled (and therefore not seen by the Django integration)."""
    with sentry_sdk.new_scope() as scope:
        for key, value in (extra or {}).items():
            scope.set_extra(key, value)
        sentry_sdk.capture_exception(exception)


def set_user_context(user, tenant=None):
    if user is not None and user.is_authenticated:
        sentry_sdk.set_user({
            'id': user.id,
            'email': user.email,
            'role': getattr(user, 'role', 'unknown'),
        })
    else:
        sentry_sdk.set_user(None)
    sentry_sdk.set_tag('tenant', tenant.slug if tenant is not None else 'none')
