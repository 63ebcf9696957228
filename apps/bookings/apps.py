from django.apps import AppConfig


class BookingsConfig(AppConfig):
    name = "apps.bookings"
    label = "bookings"
    verbose_name = "Bookings"

    def ready(self):
        from shared.application.message_bus import message_bus

        from .application.command_handlers import COMMAND_HANDLERS
        from .application.event_handlers import EVENT_HANDLERS

        message_bus.register_app(COMMAND_HANDLERS, EVENT_HANDLERS)
