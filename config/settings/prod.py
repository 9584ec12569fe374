"""Production settings for the booking core.

This module extends the base settings with production specific
configuration. Sensitive values must be provided via environment
variables.
"""

from .base import *  # noqa: F401,F403

# Never run with debug enabled in production
DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)  # noqa: F405

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = [host.strip() for host in get_env('DJANGO_ALLOWED_HOSTS', '').split(',') if host.strip()]  # noqa: F405

# Row locks taken during booking creation need a real database
DATABASES['default']['ENGINE'] = get_env('DB_ENGINE', 'django.db.backends.postgresql')  # noqa: F405
DATABASES['default']['CONN_MAX_AGE'] = int(get_env('DB_CONN_MAX_AGE', 60))  # noqa: F405
