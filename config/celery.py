import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("hostelhub")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Re-verify bookings stuck in pending/processing - every 10 minutes
    "sweep-unsettled-bookings": {
        "task": "bookings.sweep_unsettled_bookings",
        "schedule": 600.0,
        "options": {"expires": 540},
    },
}
