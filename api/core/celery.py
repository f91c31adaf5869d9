"""
Celery Configuration
====================
Configure Celery for scheduled jobs (report reminders, summary digests, holiday sync)
"""

import os
from celery import Celery
from celery.schedules import crontab
from django.conf import settings

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings')

# Create Celery app
app = Celery('timesheet_saas')

# Load config from Django settings
app.config_from_object('django.conf:settings', namespace='CELERY')

# Celery Configuration
app.conf.update(
    # Broker settings (Redis default)
    broker_url=os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0'),
    result_backend=os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0'),

    # Task settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone=os.getenv('CELERY_TIMEZONE', 'Asia/Taipei'),
    enable_utc=True,

    # Task result settings
    result_expires=3600,  # Results expire after 1 hour
    task_track_started=True,  # Track when tasks start
    task_time_limit=30 * 60,  # 30 minutes hard limit
    task_soft_time_limit=25 * 60,  # 25 minutes soft limit

    # Retry settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,

    # Beat schedule (periodic tasks)
    beat_schedule={
        'weekly-report-reminders': {
            'task': 'weekly_reports.tasks.send_weekly_report_reminders',
            'schedule': crontab(hour=9, minute=0, day_of_week='fri'),
        },
        'weekly-summary-digest': {
            'task': 'weekly_reports.tasks.send_weekly_summary_digest',
            'schedule': crontab(hour=8, minute=0, day_of_week='mon'),
        },
        'sync-holidays': {
            'task': 'holidays.tasks.sync_holidays',
            'schedule': crontab(hour=3, minute=0, day_of_month=1),
        },
    },
)

# Auto-discover tasks from all registered Django apps
app.autodiscover_tasks(lambda: settings.INSTALLED_APPS)
