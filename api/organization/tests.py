"""
Organization Tests

Tests cover:
1. Unit policies (company admin vs. leads)
2. Division/department/team CRUD and cross-company parents
3. Deletion guards
4. Invitation links
5. The organization tree
"""
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from core.models import AuditLog, AuditEvent, AuditableKind, Company, CompanySetting, CompanyStatus
from users.models import User, Role
from . import policies
from .models import Division, Department, Team, find_unit_by_invitation_token

PASSWORD = 'S3cure-Passw0rd!'


class OrganizationFixtureMixin:

    @classmethod
    def setUpTestData(cls):
        cls.company = Company.objects.create(
            name='Acme', slug='acme', status=CompanyStatus.ACTIVE, onboarded_at=timezone.now()
        )
        CompanySetting.objects.create(company=cls.company)
        cls.other_company = Company.objects.create(
            name='Globex', slug='globex', status=CompanyStatus.ACTIVE, onboarded_at=timezone.now()
        )
        CompanySetting.objects.create(company=cls.other_company)

        cls.division = Division.objects.create(company=cls.company, name='Engineering', slug='engineering')
        cls.department = Department.objects.create(
            company=cls.company, name='Platform', slug='platform', division=cls.division
        )
        cls.team = Team.objects.create(
            company=cls.company, name='Core', slug='core', division=cls.division, department=cls.department
        )
        cls.foreign_division = Division.objects.create(company=cls.other_company, name='Sales', slug='sales')

        cls.admin = User.objects.create_user(
            email='admin@acme.test', password=PASSWORD, full_name='Admin',
            company=cls.company, role=Role.COMPANY_ADMIN,
        )
        cls.team_lead = User.objects.create_user(
            email='lead@acme.test', password=PASSWORD, full_name='Lead',
            company=cls.company, role=Role.TEAM_LEAD, team=cls.team,
        )
        cls.member = User.objects.create_user(
            email='bob@acme.test', password=PASSWORD, full_name='Bob',
            company=cls.company, role=Role.MEMBER, team=cls.team,
        )


class OrganizationPolicyTests(OrganizationFixtureMixin, TestCase):
    """Test unit policies"""

    def test_only_admin_creates(self):
        """Test only company admins create units"""
        self.assertTrue(policies.create(self.admin, self.company))
        self.assertFalse(policies.create(self.team_lead, self.company))
        self.assertFalse(policies.create(self.admin, self.other_company))

    def test_lead_updates_own_unit(self):
        """Test a team lead may edit exactly their team"""
        other_team = Team.objects.create(company=self.company, name='Mobile', slug='mobile')

        self.assertTrue(policies.update(self.team_lead, self.team))
        self.assertFalse(policies.update(self.team_lead, other_team))
        self.assertFalse(policies.update(self.team_lead, self.department))

    def test_delete_is_admin_only(self):
        """Test leads never delete units"""
        self.assertTrue(policies.delete(self.admin, self.team))
        self.assertFalse(policies.delete(self.team_lead, self.team))

    def test_invitation_management(self):
        """Test invitation links are managed by admins and the unit's own lead"""
        self.assertTrue(policies.manage_invitation(self.admin, self.division))
        self.assertTrue(policies.manage_invitation(self.team_lead, self.team))
        self.assertFalse(policies.manage_invitation(self.team_lead, self.division))
        self.assertFalse(policies.manage_invitation(self.member, self.team))

    def test_cross_tenant(self):
        """Test nothing is allowed across companies"""
        self.assertFalse(policies.view(self.admin, self.foreign_division))
        self.assertFalse(policies.update(self.admin, self.foreign_division))


class OrganizationApiTests(OrganizationFixtureMixin, APITestCase):
    """Test the organization endpoints"""

    def setUp(self):
        self.client.force_authenticate(user=self.admin)

    def test_list_is_tenant_scoped(self):
        """Test units of other companies are never listed"""
        response = self.client.get('/api/v1/acme/divisions/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['slug'] for row in response.data['results']], ['engineering'])

    def test_foreign_unit_is_not_found(self):
        """Test units of other companies answer 404"""
        response = self.client.get(f'/api/v1/acme/divisions/{self.foreign_division.pk}/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_division_derives_slug(self):
        """Test the slug is derived from the name and the creation audited"""
        response = self.client.post('/api/v1/acme/divisions/', {'name': 'Research Lab'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'research-lab')
        self.assertTrue(AuditLog.all_objects.filter(
            event=AuditEvent.CREATED, auditable_kind=AuditableKind.DIVISION, company=self.company
        ).exists())

    def test_duplicate_slug(self):
        """Test slugs are unique within a company"""
        response = self.client.post(
            '/api/v1/acme/divisions/', {'name': 'Engineering 2', 'slug': 'engineering'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_same_slug_in_other_company(self):
        """Test another company's slug does not clash"""
        response = self.client.post('/api/v1/acme/divisions/', {'name': 'Sales'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_foreign_parent_rejected(self):
        """Test parents must belong to the same company"""
        response = self.client.post('/api/v1/acme/departments/', {
            'name': 'Ops', 'division_id': str(self.foreign_division.pk),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_team_inherits_division_from_department(self):
        """Test a team created under a department gets its division"""
        response = self.client.post('/api/v1/acme/teams/', {
            'name': 'Infra', 'department_id': str(self.department.pk),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['division_id'], self.division.pk)

    def test_disabled_level(self):
        """Test units cannot be created on a disabled level"""
        company_settings = self.company.settings
        company_settings.organization_levels = ['division', 'department']
        company_settings.save()

        response = self.client.post('/api/v1/acme/teams/', {'name': 'Infra'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_member_cannot_create(self):
        """Test members cannot create units"""
        self.client.force_authenticate(user=self.member)

        response = self.client.post('/api/v1/acme/divisions/', {'name': 'Shadow'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_lead_updates_own_team(self):
        """Test a team lead can rename their team"""
        self.client.force_authenticate(user=self.team_lead)

        response = self.client.patch(f'/api/v1/acme/teams/{self.team.pk}/', {'name': 'Core Platform'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Core Platform')

    def test_delete_blocked_by_members(self):
        """Test a unit with members cannot be deleted"""
        response = self.client.delete(f'/api/v1/acme/teams/{self.team.pk}/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Team.all_objects.filter(pk=self.team.pk).exists())

    def test_delete_empty_unit(self):
        """Test an empty unit is deleted"""
        empty = Team.objects.create(company=self.company, name='Empty', slug='empty')

        response = self.client.delete(f'/api/v1/acme/teams/{empty.pk}/')

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Team.all_objects.filter(pk=empty.pk).exists())

    def test_invitation_link_lifecycle(self):
        """Test generating, disabling and re-enabling a team invitation link"""
        response = self.client.post(f'/api/v1/acme/teams/{self.team.pk}/invitation/generate/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        token = response.data['data']['invitation_token']
        self.assertEqual(len(token), 64)
        self.assertTrue(response.data['data']['invitation_url'].endswith(f'/acme/register/{token}?type=team'))
        self.assertEqual(find_unit_by_invitation_token(token, 'team'), self.team)

        response = self.client.post(
            f'/api/v1/acme/teams/{self.team.pk}/invitation/toggle/', {'enabled': False}, format='json'
        )
        self.assertFalse(response.data['data']['invitation_enabled'])
        self.assertIsNone(find_unit_by_invitation_token(token))

        response = self.client.post(
            f'/api/v1/acme/teams/{self.team.pk}/invitation/toggle/', {'enabled': True}, format='json'
        )
        self.assertEqual(response.data['data']['invitation_token'], token)

    def test_lead_cannot_manage_other_invitation(self):
        """Test a team lead cannot touch the division link"""
        self.client.force_authenticate(user=self.team_lead)

        response = self.client.post(f'/api/v1/acme/divisions/{self.division.pk}/invitation/generate/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_tree(self):
        """Test the tree nests departments and teams with member counts"""
        Team.objects.create(company=self.company, name='Loose', slug='loose')

        response = self.client.get('/api/v1/acme/organization/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        division = response.data['data']['divisions'][0]
        department = division['departments'][0]
        self.assertEqual(department['name'], 'Platform')
        self.assertEqual(department['teams'][0]['members_count'], 2)
        self.assertEqual([team['slug'] for team in response.data['data']['teams']], ['loose'])
