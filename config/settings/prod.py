"""Production settings.

Sensitive values must come from environment variables. The tenant header
is mandatory here: DEFAULT_BUSINESS_ID is ignored with DEBUG off.
"""

from .base import *  # noqa: F401,F403

# Never run with debug enabled in production
DEBUG = False

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', '').split(',')  # noqa: F405

# Configure secure proxies and cookies
CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

# Keep connections open between requests; reservations are short transactions
CONN_MAX_AGE = int(os.environ.get('DB_CONN_MAX_AGE', 60))  # noqa: F405
DATABASES['default']['CONN_MAX_AGE'] = CONN_MAX_AGE  # noqa: F405
