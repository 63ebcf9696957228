"""Access to the ``RESERVATIONS`` settings block."""

from django.conf import settings

DEFAULTS = {
    'MAX_PARTICIPANTS': 100,
    'MIN_LESSON_ALLOCATIONS': 2,
    'DEFAULT_LOW_STOCK_THRESHOLD': 2,
}


def reservation_setting(name: str):
    if name not in DEFAULTS:
        raise KeyError(f"Unknown reservation setting: {name}")
    return getattr(settings, 'RESERVATIONS', {}).get(name, DEFAULTS[name])
