from django.apps import AppConfig


class WeeklyReportsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'weekly_reports'
    verbose_name = 'Weekly Reports'
