from django.apps import AppConfig


class RentalsConfig(AppConfig):
    name = "apps.rentals"
    label = "rentals"
    verbose_name = "Equipment rentals"

    def ready(self):
        from shared.application.message_bus import message_bus

        from .application.command_handlers import COMMAND_HANDLERS
        from .application.event_handlers import EVENT_HANDLERS

        message_bus.register_app(COMMAND_HANDLERS, EVENT_HANDLERS)
