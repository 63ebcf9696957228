"""Development settings.

Enables debug, which also lets requests without an X-Business-Id header
fall back to DEFAULT_BUSINESS_ID. Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

DEBUG = True

ALLOWED_HOSTS = ['*']

DEFAULT_BUSINESS_ID = os.environ.get('DEFAULT_BUSINESS_ID', '1')  # noqa: F405

CORS_ALLOW_ALL_ORIGINS = True
