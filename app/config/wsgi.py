"""
WSGI entry point for the escrow engine.

Gunicorn (or any WSGI server) serves the webhook receivers and the
payments API through the `application` callable below.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
