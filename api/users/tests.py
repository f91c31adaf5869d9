"""
User and Membership Tests

Tests cover:
1. Registration (new company, joining a company, capacity)
2. JWT login and the current-user endpoint
3. Member listing scope, invitations and role assignment
4. Accepting invitations and invitation-link registration
5. Google OAuth redirect and callback
"""
from datetime import timedelta
from unittest import mock
from urllib.parse import parse_qs, urlparse

from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APITestCase

from core.models import AuditLog, AuditableKind, Company, CompanySetting, CompanyStatus, Notification, NotificationKind
from organization.models import Division, Department, Team
from . import policies, services
from .google_oauth import GoogleAuthService, sign_state
from .models import User, Role, RegisteredVia

PASSWORD = 'S3cure-Passw0rd!'


class MembershipFixtureMixin:

    @classmethod
    def setUpTestData(cls):
        cls.company = Company.objects.create(
            name='Acme', slug='acme', status=CompanyStatus.ACTIVE, onboarded_at=timezone.now(),
            user_limit=10,
        )
        CompanySetting.objects.create(company=cls.company)

        cls.division = Division.objects.create(company=cls.company, name='Engineering', slug='engineering')
        cls.department = Department.objects.create(
            company=cls.company, name='Platform', slug='platform', division=cls.division
        )
        cls.team = Team.objects.create(
            company=cls.company, name='Core', slug='core', division=cls.division, department=cls.department
        )
        cls.other_team = Team.objects.create(
            company=cls.company, name='Mobile', slug='mobile', division=cls.division, department=cls.department
        )

        cls.admin = cls.make_user('admin@acme.test', Role.COMPANY_ADMIN)
        cls.team_lead = cls.make_user(
            'lead@acme.test', Role.TEAM_LEAD,
            division=cls.division, department=cls.department, team=cls.team,
        )
        cls.member = cls.make_user(
            'bob@acme.test', Role.MEMBER,
            division=cls.division, department=cls.department, team=cls.team,
        )
        cls.other_member = cls.make_user(
            'carol@acme.test', Role.MEMBER,
            division=cls.division, department=cls.department, team=cls.other_team,
        )

    @classmethod
    def make_user(cls, email, role, **hierarchy):
        user = User.objects.create_user(
            email=email, password=PASSWORD, full_name=email.split('@')[0].title(),
            company=cls.company, role=role, **hierarchy,
        )
        cls.company.increment_user_count()
        return user


class RegistrationApiTests(MembershipFixtureMixin, APITestCase):
    """Test sign-up and login"""

    def test_register_new_company(self):
        """Test sign-up without a slug creates an active company with its admin"""
        response = self.client.post('/api/v1/auth/register/', {
            'full_name': 'Dana', 'email': 'dana@initech.test', 'password': PASSWORD, 'company_name': 'Initech',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        user = User.objects.get(email='dana@initech.test')
        self.assertEqual(user.role, Role.COMPANY_ADMIN)
        self.assertEqual(user.registered_via, RegisteredVia.SELF_REGISTER)
        self.assertEqual(user.company.name, 'Initech')
        self.assertEqual(user.company.status, CompanyStatus.ACTIVE)
        self.assertEqual(user.company.current_user_count, 1)
        self.assertEqual(response.data['user']['company_slug'], user.company.slug)

    def test_register_requires_company_name(self):
        """Test a company name is needed when no slug is given"""
        response = self.client.post('/api/v1/auth/register/', {
            'full_name': 'Dana', 'email': 'dana@initech.test', 'password': PASSWORD,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_into_company(self):
        """Test sign-up with a slug joins the company as a member"""
        response = self.client.post('/api/v1/auth/register/', {
            'full_name': 'Erin', 'email': 'erin@acme.test', 'password': PASSWORD, 'company_slug': 'acme',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='erin@acme.test')
        self.assertEqual(user.role, Role.MEMBER)
        self.assertEqual(user.company, self.company)
        self.company.refresh_from_db()
        self.assertEqual(self.company.current_user_count, 5)

    def test_register_into_full_company(self):
        """Test joining a company at its user limit is rejected"""
        Company.objects.filter(pk=self.company.pk).update(user_limit=4)

        response = self.client.post('/api/v1/auth/register/', {
            'full_name': 'Erin', 'email': 'erin@acme.test', 'password': PASSWORD, 'company_slug': 'acme',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(email='erin@acme.test').exists())

    def test_register_duplicate_email(self):
        """Test emails are unique across companies"""
        response = self.client.post('/api/v1/auth/register/', {
            'full_name': 'Bob', 'email': 'BOB@acme.test', 'password': PASSWORD, 'company_name': 'Bob Co',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(TENANCY={'REGISTRATION_ENABLED': False})
    def test_tenant_registration_disabled(self):
        """Test joining by slug can be switched off"""
        response = self.client.post('/api/v1/auth/register/', {
            'full_name': 'Erin', 'email': 'erin@acme.test', 'password': PASSWORD, 'company_slug': 'acme',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_and_me(self):
        """Test email/password login and the profile endpoint"""
        response = self.client.post(
            '/api/v1/auth/token/', {'email': 'bob@acme.test', 'password': PASSWORD}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        response = self.client.get('/api/v1/auth/me/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['company_slug'], 'acme')
        self.member.refresh_from_db()
        self.assertIsNotNone(self.member.last_active_at)


class MemberPolicyTests(MembershipFixtureMixin, TestCase):
    """Test member visibility and role changes"""

    def test_visible_members(self):
        """Test each role sees its own slice of the company"""
        queryset = User.objects.for_tenant(self.company)

        self.assertEqual(policies.visible_members(self.admin, queryset).count(), 4)
        self.assertEqual(
            set(policies.visible_members(self.team_lead, queryset)), {self.team_lead, self.member}
        )
        self.assertFalse(policies.visible_members(self.member, queryset).exists())

    def test_change_role(self):
        """Test only company admins change roles"""
        self.assertTrue(policies.change_role(self.admin, self.member))
        self.assertFalse(policies.change_role(self.team_lead, self.member))

    def test_resolve_hierarchy_fills_parents(self):
        """Test a team implies its department and division"""
        hierarchy = services.resolve_hierarchy(self.company, team=self.team)

        self.assertEqual(hierarchy, {'division': self.division, 'department': self.department, 'team': self.team})

    def test_resolve_hierarchy_rejects_mismatch(self):
        """Test a team outside the given department is rejected"""
        stray = Department.objects.create(company=self.company, name='Stray', slug='stray', division=self.division)

        with self.assertRaises(ValidationError):
            services.resolve_hierarchy(self.company, department=stray, team=self.team)


class MemberApiTests(MembershipFixtureMixin, APITestCase):
    """Test the member endpoints"""

    def test_member_cannot_list(self):
        """Test plain members cannot list members"""
        self.client.force_authenticate(user=self.member)

        response = self.client.get('/api/v1/acme/members/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_team_lead_list(self):
        """Test a team lead only sees their team"""
        self.client.force_authenticate(user=self.team_lead)

        response = self.client.get('/api/v1/acme/members/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            sorted(row['email'] for row in response.data['results']), ['bob@acme.test', 'lead@acme.test']
        )

    def test_keyword_filter(self):
        """Test the keyword filter matches name or email"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.get('/api/v1/acme/members/', {'keyword': 'carol'})

        self.assertEqual([row['email'] for row in response.data['results']], ['carol@acme.test'])

    def test_invite_member(self):
        """Test an invitation creates a pending member and notifies them"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.post('/api/v1/acme/members/invite/', {
            'email': 'dave@acme.test', 'full_name': 'Dave', 'role': Role.MEMBER, 'team_id': str(self.team.pk),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['invitation_status'], 'pending')
        self.assertEqual(response.data['data']['department']['name'], 'Platform')
        dave = User.objects.get(email='dave@acme.test')
        self.assertFalse(dave.has_usable_password())
        self.assertEqual(len(dave.invitation_token), 60)
        self.assertTrue(Notification.objects.filter(user=dave, kind=NotificationKind.MEMBER_INVITATION).exists())
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(dave.invitation_token, mail.outbox[0].body)
        self.company.refresh_from_db()
        self.assertEqual(self.company.current_user_count, 5)

    def test_invite_lead_requires_unit(self):
        """Test a team lead must be invited into a team"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.post('/api/v1/acme/members/invite/', {
            'email': 'dave@acme.test', 'full_name': 'Dave', 'role': Role.TEAM_LEAD,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('team_id', response.data)

    def test_team_lead_invites_outside_team(self):
        """Test a team lead cannot invite into another team"""
        self.client.force_authenticate(user=self.team_lead)

        response = self.client.post('/api/v1/acme/members/invite/', {
            'email': 'dave@acme.test', 'full_name': 'Dave', 'team_id': str(self.other_team.pk),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invite_over_limit(self):
        """Test invitations respect the user limit"""
        Company.objects.filter(pk=self.company.pk).update(user_limit=4)
        self.client.force_authenticate(user=self.admin)

        response = self.client.post('/api/v1/acme/members/invite/', {
            'email': 'dave@acme.test', 'full_name': 'Dave',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assign_role(self):
        """Test the admin promotes a member and the change is audited"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(f'/api/v1/acme/members/{self.other_member.pk}/roles/', {
            'role': Role.TEAM_LEAD, 'team_id': str(self.other_team.pk),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.other_member.refresh_from_db()
        self.assertEqual(self.other_member.role, Role.TEAM_LEAD)
        entry = AuditLog.all_objects.get(auditable_kind=AuditableKind.USER, auditable_id=self.other_member.pk)
        self.assertEqual(entry.properties['old']['role'], Role.MEMBER)
        self.assertEqual(entry.properties['new']['role'], Role.TEAM_LEAD)

    def test_lead_cannot_assign_role(self):
        """Test role changes are admin only"""
        self.client.force_authenticate(user=self.team_lead)

        response = self.client.put(f'/api/v1/acme/members/{self.member.pk}/roles/', {
            'role': Role.TEAM_LEAD, 'team_id': str(self.team.pk),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class InvitationApiTests(MembershipFixtureMixin, APITestCase):
    """Test the public invitation endpoints"""

    def setUp(self):
        self.invitee = User(
            company=self.company, email='dave@acme.test', full_name='Dave', role=Role.MEMBER,
            registered_via=RegisteredVia.INVITATION,
        )
        self.invitee.set_unusable_password()
        self.token = self.invitee.issue_invitation()
        self.invitee.save()

    def test_preview(self):
        """Test the invitation can be previewed without signing in"""
        response = self.client.get(f'/api/v1/acme/auth/invitations/{self.token}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['email'], 'dave@acme.test')
        self.assertFalse(response.data['data']['expired'])

    def test_accept(self):
        """Test accepting sets the password and returns tokens"""
        response = self.client.post(
            '/api/v1/acme/auth/invitations/accept/', {'token': self.token, 'password': PASSWORD}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.invitee.refresh_from_db()
        self.assertTrue(self.invitee.check_password(PASSWORD))
        self.assertIsNone(self.invitee.invitation_token)
        self.assertIsNotNone(self.invitee.email_verified_at)

        response = self.client.post(
            '/api/v1/acme/auth/invitations/accept/', {'token': self.token, 'password': PASSWORD}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_expired(self):
        """Test an expired invitation answers 410"""
        User.objects.filter(pk=self.invitee.pk).update(invitation_sent_at=timezone.now() - timedelta(days=8))

        response = self.client.post(
            '/api/v1/acme/auth/invitations/accept/', {'token': self.token, 'password': PASSWORD}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_410_GONE)
        self.assertEqual(response.data['error'], 'invitation_expired')

    def test_token_of_other_company(self):
        """Test an invitation is only valid on its own company"""
        other = Company.objects.create(name='Globex', slug='globex', status=CompanyStatus.ACTIVE)
        CompanySetting.objects.create(company=other)

        response = self.client.get(f'/api/v1/globex/auth/invitations/{self.token}/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_register_by_invitation_link(self):
        """Test registering through a team link places the user in that team"""
        token = self.team.rotate_invitation_token()

        response = self.client.post('/api/v1/acme/auth/register-by-invitation/', {
            'token': token, 'type': 'team', 'name': 'Frank', 'email': 'frank@acme.test', 'password': PASSWORD,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        frank = User.objects.get(email='frank@acme.test')
        self.assertEqual(frank.registered_via, RegisteredVia.INVITATION_LINK)
        self.assertEqual(
            (frank.division_id, frank.department_id, frank.team_id),
            (self.division.pk, self.department.pk, self.team.pk),
        )

    def test_disabled_invitation_link(self):
        """Test a disabled link is refused"""
        token = self.team.rotate_invitation_token()
        self.team.set_invitation_enabled(False)

        response = self.client.post('/api/v1/acme/auth/register-by-invitation/', {
            'token': token, 'type': 'team', 'name': 'Frank', 'email': 'frank@acme.test', 'password': PASSWORD,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


def fake_google_response(payload, status_code=200):
    response = mock.Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


GOOGLE_PROFILE = {
    'id': '1098765', 'email': 'gina@gmail.test', 'name': 'Gina', 'picture': 'https://example.test/gina.png',
}


@override_settings(
    GOOGLE_OAUTH_CLIENT_ID='client-id',
    GOOGLE_OAUTH_CLIENT_SECRET='client-secret',
    GOOGLE_OAUTH_REDIRECT_URI='http://testserver/api/v1/auth/google/callback/',
    FRONTEND_URL='http://app.test',
)
class GoogleOAuthTests(MembershipFixtureMixin, APITestCase):
    """Test the Google sign-in flow with Google's endpoints mocked"""

    def google_callback(self, state, profile=GOOGLE_PROFILE):
        with mock.patch('users.google_oauth.requests.post') as mock_post, \
                mock.patch('users.google_oauth.requests.get') as mock_get:
            mock_post.return_value = fake_google_response({'access_token': 'google-access'})
            mock_get.return_value = fake_google_response(profile)
            return self.client.post(
                '/api/v1/auth/google/callback/', {'code': 'auth-code', 'state': state}, format='json'
            )

    @override_settings(GOOGLE_OAUTH_CLIENT_ID='')
    def test_redirect_not_configured(self):
        """Test the redirect fails when no client id is configured"""
        response = self.client.get('/api/v1/auth/google/redirect/')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_redirect_carries_signed_state(self):
        """Test the authorize URL carries the registration context in its state"""
        response = self.client.get('/api/v1/auth/google/redirect/', {'intent': 'tenant_register', 'company_slug': 'acme'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        query = parse_qs(urlparse(response.data['url']).query)
        self.assertEqual(query['client_id'], ['client-id'])
        self.assertTrue(query['state'][0])

    def test_callback_registers_company_admin(self):
        """Test a new Google user with the default intent gets their own company"""
        response = self.google_callback(sign_state())

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        gina = User.objects.get(email='gina@gmail.test')
        self.assertEqual(gina.role, Role.COMPANY_ADMIN)
        self.assertEqual(gina.google_id, '1098765')
        self.assertEqual(gina.registered_via, RegisteredVia.GOOGLE_SELF_REGISTER)
        self.assertIsNotNone(gina.email_verified_at)

    def test_callback_joins_tenant(self):
        """Test the tenant_register intent joins the named company"""
        response = self.google_callback(sign_state(intent='tenant_register', company_slug='acme'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        gina = User.objects.get(email='gina@gmail.test')
        self.assertEqual(gina.company, self.company)
        self.assertEqual(gina.role, Role.MEMBER)

    def test_callback_links_existing_account(self):
        """Test an existing email is linked instead of duplicated"""
        response = self.google_callback(sign_state(intent='login'), profile={**GOOGLE_PROFILE, 'email': 'bob@acme.test'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.member.refresh_from_db()
        self.assertEqual(self.member.google_id, '1098765')
        self.assertEqual(User.objects.filter(email__iexact='bob@acme.test').count(), 1)

    def test_callback_with_tampered_state(self):
        """Test a forged state is rejected"""
        response = self.google_callback(sign_state() + 'x')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'invalid_state')

    def test_callback_google_failure(self):
        """Test a rejected code answers 400"""
        with mock.patch('users.google_oauth.requests.post') as mock_post:
            mock_post.return_value = fake_google_response({}, status_code=400)
            response = self.client.post(
                '/api/v1/auth/google/callback/', {'code': 'bad', 'state': sign_state()}, format='json'
            )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_browser_callback_redirects_with_tokens(self):
        """Test the browser callback redirects to the front-end with tokens"""
        with mock.patch('users.google_oauth.requests.post') as mock_post, \
                mock.patch('users.google_oauth.requests.get') as mock_get:
            mock_post.return_value = fake_google_response({'access_token': 'google-access'})
            mock_get.return_value = fake_google_response(GOOGLE_PROFILE)
            response = self.client.get('/api/v1/auth/google/callback/', {'code': 'auth-code', 'state': sign_state()})

        self.assertEqual(response.status_code, status.HTTP_302_FOUND)
        self.assertTrue(response['Location'].startswith('http://app.test/auth/callback?access='))

    def test_login_intent_without_account(self):
        """Test the login intent never creates accounts"""
        with self.assertRaises(ValidationError):
            GoogleAuthService({'intent': 'login'}).handle(GOOGLE_PROFILE)
        self.assertFalse(User.objects.filter(email='gina@gmail.test').exists())
