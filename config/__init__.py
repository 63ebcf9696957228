"""Top-level package for Django configuration.

Settings modules for each environment plus the WSGI and ASGI entry
points.
"""
