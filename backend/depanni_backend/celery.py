"""Celery application for background assistance tasks."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "depanni_backend.settings.settings")

app = Celery("depanni_backend")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
