import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'project.settings')

app = Celery('babyresell')

# Read CELERY_* keys from Django settings, including the beat schedule
app.config_from_object('django.conf:settings', namespace='CELERY')

app.autodiscover_tasks()
