import os

from celery import Celery
from celery.signals import setup_logging

# Workers run with production settings unless the environment says otherwise;
# pytest passes --ds and local runs export DJANGO_SETTINGS_MODULE.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.production")

app = Celery("workhub")

# All Celery options live in Django settings under the CELERY_ prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")


@setup_logging.connect
def config_loggers(*args, **kwargs):
    # Workers log through the same LOGGING dict as the web process.
    from logging.config import dictConfig  # noqa: PLC0415

    from django.conf import settings  # noqa: PLC0415

    dictConfig(settings.LOGGING)


# Picks up workhub.chat.tasks (chat.mark_messages_as_read).
app.autodiscover_tasks()
