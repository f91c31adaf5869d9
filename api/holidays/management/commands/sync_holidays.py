"""
Sync holidays from the New Taipei City open-data calendar.
"""
from django.core.management.base import BaseCommand
from django.utils import timezone

from holidays.services.cache_service import HolidayCacheService


class Command(BaseCommand):
    help = 'Sync holidays from New Taipei City Open Data API'

    def add_arguments(self, parser):
        parser.add_argument(
            '--year',
            type=int,
            help='The year to sync (defaults to current and next year)',
        )

    def handle(self, *args, **options):
        year = options.get('year')
        if year:
            years = [year]
        else:
            current = timezone.localdate().year
            years = [current, current + 1]

        service = HolidayCacheService()
        for target in years:
            self.stdout.write(f'Syncing holidays for year {target}...')
            result = service.refresh_year(target)
            for error in result['errors']:
                self.stdout.write(self.style.WARNING(f'  {error}'))
            self.stdout.write(self.style.SUCCESS(
                f"Holidays for {target} synced successfully ({result['synced']} rows)."
            ))
