"""Rentals app package.

Standalone equipment rentals: a customer takes a quantity of one
variant (or a single legacy unit) for a window. Rentals are created
and transitioned only through the command handlers in
``application.command_handlers``, which lock the contended variant and
re-check availability inside the same transaction as the write.
"""
