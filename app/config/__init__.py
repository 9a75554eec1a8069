# Load the Celery app with Django so shared_task decorators in the payments
# app bind to it and the settlement/reconciliation workers are discovered.

from config.celery import app as celery_app

__all__ = ("celery_app",)
