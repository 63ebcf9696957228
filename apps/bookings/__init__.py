"""Bookings app package.

Customer bookings of a time slot, optionally for a lesson with an
instructor and reserved equipment. A booking's equipment allocations
hold variant capacity until check-in converts them into rentals.
All writes go through the command handlers, which run each request
as one transaction and re-check lesson seats, instructor overlap and
equipment capacity under row locks.
"""
