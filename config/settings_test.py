"""
Test settings: in-memory SQLite, in-memory email, fast hashing.
"""
from .settings import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

INTAKE_WEBHOOK_SECRET = 'test-webhook-secret'

CARE_TEAM_NOTIFICATION_EMAILS = ['care-team@clinic.test']
