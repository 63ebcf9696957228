"""ASGI config.

Exposes the ASGI application. Reservation commands stay synchronous
underneath; async callers reach them through
``message_bus.ahandle_command``.
"""

import os
from django.core.asgi import get_asgi_application  # type: ignore

# Production servers should set DJANGO_SETTINGS_MODULE explicitly.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_asgi_application()
