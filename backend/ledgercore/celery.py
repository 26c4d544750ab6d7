"""
Celery application configuration.

Only operational batch work runs here (the reconciliation sweep); the
posting path never goes through Celery.

Usage:
    # Start worker
    celery -A ledgercore worker -l INFO

    # Start beat scheduler (nightly reconciliation)
    celery -A ledgercore beat -l INFO
"""
import os

from celery import Celery

# Set default Django settings
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ledgercore.settings")

app = Celery("ledgercore")

# Load config from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()
