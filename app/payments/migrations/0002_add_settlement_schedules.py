"""
Add celery-beat schedules for escrow settlement and payout reconciliation.

- Settle Escrow Sessions: every 5 minutes, releases held host shares
  whose hold period has elapsed
- Reconcile Payouts: hourly, retries the local debit for payouts whose
  gateway call succeeded but whose debit was not written
- Clean Up Webhook Events: daily, prunes old processed webhook audit rows
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Settle Escrow Sessions",
        "task": "payments.workers.settlement_worker.run_settlement_batch",
        "every": 5,
        "period": "minutes",
        "description": (
            "Finds completed sessions past the escrow hold period and moves "
            "the host share from pending earnings to the withdrawable balance."
        ),
    },
    {
        "name": "Reconcile Payouts",
        "task": "payments.workers.reconciliation_worker.reconcile_pending_payouts",
        "every": 1,
        "period": "hours",
        "description": (
            "Retries the wallet debit for payouts the gateway accepted but "
            "that were not debited locally."
        ),
    },
    {
        "name": "Clean Up Webhook Events",
        "task": "payments.tasks.cleanup_old_webhook_events",
        "every": 1,
        "period": "days",
        "description": "Deletes processed webhook audit rows older than 90 days.",
    },
]


def create_periodic_tasks(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period=entry["period"],
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
