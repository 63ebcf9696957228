"""Finances app package.

Payment sink of the reservation engine: every reservation-creating
transaction records exactly one completed payment here, inside the
same transaction. Gateway integrations and refunds live elsewhere.
"""
