"""
Seed a sample tenant for local development.
Creates the ``acme`` company with a small hierarchy and one user per role.
Running it again leaves existing rows untouched.
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import Company, CompanySetting, CompanyStatus
from organization.models import Division, Department, Team
from users.models import User, Role, RegisteredVia

DEFAULT_PASSWORD = 'password'


class Command(BaseCommand):
    help = 'Seed a sample company with divisions, departments, teams and users'

    def add_arguments(self, parser):
        parser.add_argument('--slug', default='acme', help='Company slug (default: acme)')
        parser.add_argument('--password', default=DEFAULT_PASSWORD, help='Password for every seeded user')

    @transaction.atomic
    def handle(self, *args, **options):
        slug = options['slug']
        password = options['password']

        self.stdout.write(f'Seeding sample company "{slug}"...')

        company, created = Company.objects.get_or_create(
            slug=slug,
            defaults={
                'name': f'{slug.title()} Corp',
                'status': CompanyStatus.ACTIVE,
                'onboarded_at': timezone.now(),
            }
        )
        CompanySetting.objects.get_or_create(company=company)
        if not created:
            self.stdout.write(self.style.WARNING(f'Company "{slug}" already exists, filling in missing rows.'))

        division = self._unit(Division, company, 'Engineering', sort_order=1)
        platform = self._unit(Department, company, 'Platform', division=division, sort_order=1)
        product = self._unit(Department, company, 'Product', division=division, sort_order=2)
        core_team = self._unit(Team, company, 'Core', division=division, department=platform, sort_order=1)
        web_team = self._unit(Team, company, 'Web', division=division, department=product, sort_order=2)

        users = [
            ('admin', 'Company Admin', Role.COMPANY_ADMIN, {}),
            ('division', 'Division Lead', Role.DIVISION_LEAD, {'division': division}),
            ('platform', 'Platform Manager', Role.DEPARTMENT_MANAGER,
             {'division': division, 'department': platform}),
            ('core-lead', 'Core Team Lead', Role.TEAM_LEAD,
             {'division': division, 'department': platform, 'team': core_team}),
            ('alice', 'Alice', Role.MEMBER, {'division': division, 'department': platform, 'team': core_team}),
            ('bob', 'Bob', Role.MEMBER, {'division': division, 'department': product, 'team': web_team}),
        ]
        seeded = 0
        for local_part, full_name, role, hierarchy in users:
            if self._user(company, f'{local_part}@{slug}.test', full_name, role, password, **hierarchy):
                seeded += 1

        hq_email = 'hq@timesheet-saas.test'
        if not User.objects.filter(email=hq_email).exists():
            User.objects.create_superuser(
                hq_email, password, full_name='HQ Admin', registered_via=RegisteredVia.SEED
            )
            seeded += 1

        self.stdout.write(self.style.SUCCESS(f'✅ Sample company "{slug}" ready ({seeded} users created).'))

    @staticmethod
    def _unit(model, company, name, **fields):
        unit, _ = model.all_objects.get_or_create(
            company=company, slug=name.lower(), defaults={'name': name, **fields}
        )
        return unit

    @staticmethod
    def _user(company, email, full_name, role, password, **hierarchy):
        if User.objects.filter(email=email).exists():
            return False
        User.objects.create_user(
            email=email,
            password=password,
            full_name=full_name,
            role=role,
            company=company,
            registered_via=RegisteredVia.SEED,
            email_verified_at=timezone.now(),
            **hierarchy,
        )
        company.increment_user_count()
        return True
