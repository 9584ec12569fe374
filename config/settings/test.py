"""Test settings.

In-memory SQLite keeps the suite independent of any running database.
"""

from .base import *  # noqa: F401,F403

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

# Let project loggers reach the root logger so pytest's caplog sees them
for _name in ('apps', 'shared'):
    LOGGING['loggers'][_name] = {'level': 'DEBUG', 'propagate': True}  # noqa: F405
