"""
ASGI entry point for the escrow engine.

The engine exposes plain HTTP endpoints only (webhooks and the payments
API), so the Django ASGI handler is served directly by Uvicorn.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
