"""
Send weekly report reminders to members who have not submitted this week.
"""
from django.core.management.base import BaseCommand

from weekly_reports.services import jobs


class Command(BaseCommand):
    help = 'Send weekly report reminders to users who have not submitted their reports'

    def handle(self, *args, **options):
        self.stdout.write('Sending weekly report reminders...')
        sent = jobs.send_weekly_report_reminders()
        self.stdout.write(self.style.SUCCESS(f'Sent {sent} reminders.'))
