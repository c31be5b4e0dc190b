"""Celery application for the storefront backend.

``DJANGO_SETTINGS_MODULE`` is set before the app is instantiated so that
Celery reads its configuration from Django settings (``CELERY_`` prefix).
The only periodic job is the outbox relay (``core.publish_outbox_events``).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("storefront")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up tasks.py from every installed app
app.autodiscover_tasks()
