"""Businesses app package.

Holds the tenant (Business) and the collaborators the reservation
engine only reads: customers, instructors and lessons. Every row is
scoped to one business and no query crosses that boundary.
"""
