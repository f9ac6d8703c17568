"""
Development settings: local machine, SQLite, console e-mail.
"""
from .settings import *  # noqa: F401,F403

DEBUG = True
ALLOWED_HOSTS = ['*']

LOG_LEVEL = 'DEBUG'
LOGGING['root']['level'] = 'DEBUG'  # noqa: F405

REST_FRAMEWORK['DEFAULT_THROTTLE_CLASSES'] = []  # noqa: F405

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'
