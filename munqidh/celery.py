# munqidh/celery.py
"""
Celery configuration for donor outreach and request housekeeping
"""
import os
from celery import Celery

# Set default Django settings
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'munqidh.settings')

# Create Celery app
app = Celery('munqidh')

# Load config from Django settings (prefix: CELERY_)
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()
