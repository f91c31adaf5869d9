"""
Send the weekly summary digest to company managers.
"""
import re

from django.core.management.base import BaseCommand, CommandError

from weekly_reports.services import jobs


class Command(BaseCommand):
    help = 'Send weekly summary digest to managers'

    def add_arguments(self, parser):
        parser.add_argument(
            '--week',
            help='Week to summarise: WW of the current year, or YYYY-WW (default: previous week)',
        )

    def handle(self, *args, **options):
        work_year, work_week = self._parse_week(options.get('week'))
        self.stdout.write('Sending weekly summary digests...')
        sent = jobs.send_weekly_summary_digest(work_year=work_year, work_week=work_week)
        self.stdout.write(self.style.SUCCESS(f'Sent {sent} digests.'))

    @staticmethod
    def _parse_week(value):
        if not value:
            return jobs.digest_week()
        match = re.fullmatch(r'(?:(\d{4})-)?W?(\d{1,2})', value.strip())
        if not match:
            raise CommandError(f'Invalid --week value: {value}')
        week = int(match.group(2))
        if not 1 <= week <= 53:
            raise CommandError(f'Week must be between 1 and 53: {value}')
        if match.group(1):
            return int(match.group(1)), week
        return jobs.digest_week(week)
