"""
Celery configuration for the escrow engine.

Celery runs the time-driven side of the engine:
- Settlement batches that release held funds once the hold period elapses
- The payout reconciliation sweep

Both are registered as periodic tasks with django-celery-beat (see the
payments data migrations) and are idempotent, so an overlapping or repeated
tick never moves money twice.

Redis is used as both the message broker and result backend.

Usage:
    # Trigger a settlement batch by hand
    from payments.workers import run_settlement_batch
    run_settlement_batch.delay()
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("escrow")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
