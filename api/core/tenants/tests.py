"""
Multi-Tenant Tests

Tests cover:
1. IP whitelist matching and rule validation
2. Tenant resolution from host names and the tenant context
3. Middleware gating (unknown tenant, suspended tenant, IP whitelist)
4. Per-tenant throttling and the rate limited response shape
5. Company settings endpoints
6. HQ company administration
7. Append-only audit log
"""
from types import SimpleNamespace

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import Throttled
from rest_framework.test import APITestCase

from core.exceptions import api_exception_handler
from core.models import AuditLog, AuditEvent, AuditableKind, Company, CompanySetting, CompanyStatus
from core.models_audit import AuditLogImmutable
from core.throttling import TenantAnonRateThrottle, TenantUserRateThrottle
from organization.models import Division, Team
from users.models import User, Role
from .context import TenantContext, get_current_tenant, tenant_scope
from .ip_matcher import is_valid_rule, matches
from .resolver import slug_from_host

PASSWORD = 'S3cure-Passw0rd!'

SUBDOMAIN_TENANCY = {
    'SLUG_MODE': 'subdomain',
    'PRIMARY_DOMAIN': 'timesheet-saas.test',
    'HQ_PORTAL_DOMAIN': 'hq.timesheet-saas.test',
}


def make_company(slug, status_value=CompanyStatus.ACTIVE, **fields):
    company = Company.objects.create(
        name=slug.title(), slug=slug, status=status_value, onboarded_at=timezone.now(), **fields
    )
    CompanySetting.objects.create(company=company)
    return company


class IpMatcherTests(TestCase):
    """Test IP and CIDR matching"""

    def test_empty_rules_allow_everything(self):
        """Test no rules means no restriction"""
        self.assertTrue(matches('203.0.113.9', []))
        self.assertTrue(matches('203.0.113.9', None))

    def test_literal_and_cidr(self):
        """Test literal addresses and ranges"""
        rules = ['203.0.113.9', '10.0.0.0/8']

        self.assertTrue(matches('203.0.113.9', rules))
        self.assertTrue(matches('10.20.30.40', rules))
        self.assertFalse(matches('192.168.1.1', rules))

    def test_zero_prefix_matches_same_family(self):
        """Test /0 matches every address of its family only"""
        self.assertTrue(matches('8.8.8.8', ['0.0.0.0/0']))
        self.assertFalse(matches('2001:db8::1', ['0.0.0.0/0']))

    def test_ipv6_range(self):
        """Test IPv6 ranges"""
        self.assertTrue(matches('2001:db8::42', ['2001:db8::/32']))
        self.assertFalse(matches('2001:db9::42', ['2001:db8::/32']))

    def test_malformed_rules_never_match(self):
        """Test malformed rules are ignored instead of raising"""
        rules = ['10.0.0.0/33', 'not-an-ip/8', '10.0.0.0/x', '1.2.3.4/8/1', None, '']

        self.assertFalse(matches('10.0.0.1', rules))

    def test_rule_validation(self):
        """Test whitelist entry validation"""
        self.assertTrue(is_valid_rule('192.168.0.1'))
        self.assertTrue(is_valid_rule('192.168.0.0/24'))
        self.assertTrue(is_valid_rule('::1/128'))
        self.assertFalse(is_valid_rule('192.168.0.0/33'))
        self.assertFalse(is_valid_rule('localhost'))
        self.assertFalse(is_valid_rule(''))


@override_settings(TENANCY=SUBDOMAIN_TENANCY)
class TenantResolutionTests(TestCase):
    """Test host based tenant resolution and the tenant context"""

    def test_slug_from_subdomain(self):
        """Test the leftmost label of a subdomain is the slug"""
        self.assertEqual(slug_from_host('acme.timesheet-saas.test'), 'acme')
        self.assertEqual(slug_from_host('ACME.timesheet-saas.test:8000'), 'acme')

    def test_hosts_without_slug(self):
        """Test the primary domain, the HQ portal and unrelated hosts yield nothing"""
        self.assertIsNone(slug_from_host('timesheet-saas.test'))
        self.assertIsNone(slug_from_host('hq.timesheet-saas.test'))
        self.assertIsNone(slug_from_host('acme.example.com'))
        self.assertIsNone(slug_from_host(''))

    def test_explicit_primary_domain(self):
        """Test the primary domain can be passed in"""
        self.assertEqual(slug_from_host('globex.example.com', primary_domain='example.com'), 'globex')

    def test_tenant_scope_filters_default_manager(self):
        """Test the default manager follows the active tenant"""
        acme = make_company('acme')
        globex = make_company('globex')
        Division.objects.create(company=acme, name='Acme Ops', slug='ops')
        Division.objects.create(company=globex, name='Globex Ops', slug='ops')

        with tenant_scope(TenantContext.from_company(acme)):
            self.assertEqual(list(Division.objects.values_list('name', flat=True)), ['Acme Ops'])
            self.assertEqual(Division.all_objects.count(), 2)
        self.assertIsNone(get_current_tenant())
        self.assertEqual(Division.objects.count(), 2)
        self.assertEqual(Division.objects.for_tenant(globex).get().name, 'Globex Ops')

    def test_save_stamps_active_tenant(self):
        """Test rows saved without a company inside a tenant scope belong to that tenant"""
        acme = make_company('acme')

        with tenant_scope(TenantContext.from_company(acme)):
            division = Division.objects.create(name='Research', slug='research')

        division.refresh_from_db()
        self.assertEqual(division.company_id, acme.pk)
        self.assertEqual(Division.objects.for_tenant(acme).get().slug, 'research')

    def test_save_keeps_explicit_company(self):
        """Test an explicit company is not overwritten by the active tenant"""
        acme = make_company('acme')
        globex = make_company('globex')

        with tenant_scope(TenantContext.from_company(acme)):
            division = Division.objects.create(company=globex, name='Sales', slug='sales')

        self.assertEqual(Division.all_objects.get(pk=division.pk).company_id, globex.pk)

    def test_context_is_read_only(self):
        """Test the context snapshot cannot be mutated"""
        company = make_company('acme')
        company.settings.login_ip_whitelist = ['10.0.0.0/8']
        company.settings.save()

        context = TenantContext.from_company(company)

        self.assertEqual(context.ip_whitelist, ['10.0.0.0/8'])
        with self.assertRaises(TypeError):
            context.settings['login_ip_whitelist'] = []


class TenantMiddlewareTests(APITestCase):
    """Test tenant gating in the middleware"""

    @classmethod
    def setUpTestData(cls):
        cls.company = make_company('acme')
        cls.user = User.objects.create_user(
            email='bob@acme.test', password=PASSWORD, full_name='Bob',
            company=cls.company, role=Role.MEMBER,
        )

    def setUp(self):
        self.client.force_authenticate(user=self.user)

    def test_unknown_tenant(self):
        """Test an unknown slug answers 404"""
        response = self.client.get('/api/v1/ghost/settings/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()['error'], 'tenant_not_found')

    def test_suspended_tenant(self):
        """Test a suspended company answers 423"""
        Company.objects.filter(pk=self.company.pk).update(status=CompanyStatus.SUSPENDED)

        response = self.client.get('/api/v1/acme/settings/')

        self.assertEqual(response.status_code, 423)
        self.assertEqual(response.json()['error'], 'tenant_suspended')

    def test_onboarding_tenant_is_locked(self):
        """Test a company still onboarding is not served"""
        make_company('initech', status_value=CompanyStatus.ONBOARDING)

        response = self.client.get('/api/v1/initech/settings/')

        self.assertEqual(response.status_code, 423)

    @override_settings(TENANCY=SUBDOMAIN_TENANCY)
    def test_unknown_subdomain(self):
        """Test an unknown subdomain answers 404 on routes without a slug"""
        response = self.client.get('/api/v1/notifications/', HTTP_HOST='ghost.timesheet-saas.test')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_member_of_other_company(self):
        """Test users of another company are forbidden"""
        make_company('globex')

        response = self.client.get('/api/v1/globex/settings/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_ip_outside_whitelist(self):
        """Test a client outside the whitelist is rejected and audited"""
        settings_row = self.company.settings
        settings_row.login_ip_whitelist = ['10.0.0.0/8']
        settings_row.save()

        response = self.client.get('/api/v1/acme/settings/', REMOTE_ADDR='192.168.1.5')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['error'], 'ip_not_whitelisted')
        entry = AuditLog.all_objects.get(event=AuditEvent.IP_WHITELIST_REJECTED)
        self.assertEqual(entry.company_id, self.company.pk)
        self.assertEqual(entry.properties, {'ip': '192.168.1.5'})

    def test_ip_inside_whitelist(self):
        """Test a client inside the whitelist passes"""
        settings_row = self.company.settings
        settings_row.login_ip_whitelist = ['10.0.0.0/8']
        settings_row.save()

        response = self.client.get('/api/v1/acme/settings/', REMOTE_ADDR='10.1.2.3')

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_unresolvable_client_ip(self):
        """Test a whitelisted tenant rejects requests without a client address"""
        settings_row = self.company.settings
        settings_row.login_ip_whitelist = ['10.0.0.0/8']
        settings_row.save()

        response = self.client.get('/api/v1/acme/settings/', REMOTE_ADDR='')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()['error'], 'client_ip_unresolved')
        self.assertFalse(AuditLog.all_objects.filter(event=AuditEvent.IP_WHITELIST_REJECTED).exists())

    def test_missing_address_ignored_without_whitelist(self):
        """Test tenants without a whitelist do not need a client address"""
        response = self.client.get('/api/v1/acme/settings/', REMOTE_ADDR='')

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    @override_settings(TENANCY={'TRUST_FORWARDED_FOR': True})
    def test_forwarded_for_when_trusted(self):
        """Test X-Forwarded-For is honoured only when trusted"""
        settings_row = self.company.settings
        settings_row.login_ip_whitelist = ['203.0.113.7']
        settings_row.save()

        response = self.client.get(
            '/api/v1/acme/settings/', REMOTE_ADDR='10.0.0.1', HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)


class ThrottleTests(TestCase):
    """Test the tenant throttle keys and the rate limited response"""

    def test_user_key_includes_company(self):
        """Test the same user gets separate budgets per tenant"""
        user = SimpleNamespace(is_authenticated=True, pk='u-1', company_id='c-1')
        throttle = TenantUserRateThrottle()

        acme = SimpleNamespace(user=user, tenant=SimpleNamespace(company_id='c-1'))
        globex = SimpleNamespace(user=user, tenant=SimpleNamespace(company_id='c-2'))

        self.assertEqual(throttle.get_cache_key(acme, None), 'tenant:c-1:user:u-1')
        self.assertEqual(throttle.get_cache_key(globex, None), 'tenant:c-2:user:u-1')

    def test_anonymous_requests_skip_user_throttle(self):
        """Test anonymous callers are left to the anonymous throttle"""
        request = SimpleNamespace(user=SimpleNamespace(is_authenticated=False), tenant=None)

        self.assertIsNone(TenantUserRateThrottle().get_cache_key(request, None))

    def test_authenticated_requests_skip_anon_throttle(self):
        """Test signed-in callers are not throttled by IP"""
        request = SimpleNamespace(user=SimpleNamespace(is_authenticated=True), tenant=None)

        self.assertIsNone(TenantAnonRateThrottle().get_cache_key(request, None))

    def test_rate_limited_shape(self):
        """Test throttled responses carry the retry delay in seconds"""
        response = api_exception_handler(Throttled(wait=1.2), {'request': None})

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(response.data['error'], 'rate_limited')
        self.assertEqual(response.data['retry_after'], 2)


class TenantSettingsApiTests(APITestCase):
    """Test the company settings endpoints"""

    @classmethod
    def setUpTestData(cls):
        cls.company = make_company('acme')
        cls.admin = User.objects.create_user(
            email='admin@acme.test', password=PASSWORD, full_name='Admin',
            company=cls.company, role=Role.COMPANY_ADMIN,
        )
        cls.member = User.objects.create_user(
            email='bob@acme.test', password=PASSWORD, full_name='Bob',
            company=cls.company, role=Role.MEMBER,
        )

    def test_member_reads_settings(self):
        """Test any member can read the settings overview"""
        self.client.force_authenticate(user=self.member)

        response = self.client.get('/api/v1/acme/settings/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['company']['slug'], 'acme')
        self.assertIn('organization', response.data['data'])
        self.assertNotIn('hq_admin', [role['value'] for role in response.data['data']['roles']])

    def test_member_cannot_update(self):
        """Test settings updates are admin only"""
        self.client.force_authenticate(user=self.member)

        response = self.client.put('/api/v1/acme/settings/ip-whitelist/', {'login_ip_whitelist': []}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_whitelist_entry(self):
        """Test malformed whitelist entries are rejected"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(
            '/api/v1/acme/settings/ip-whitelist/', {'login_ip_whitelist': ['10.0.0.0/40']}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_whitelist_is_audited(self):
        """Test a whitelist update stores clean entries and audits old/new values"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(
            '/api/v1/acme/settings/ip-whitelist/',
            {'login_ip_whitelist': [' 127.0.0.1 ', '', '127.0.0.1', '10.0.0.0/8']},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'], ['127.0.0.1', '10.0.0.0/8'])
        entry = AuditLog.all_objects.get(auditable_kind=AuditableKind.COMPANY_SETTING, event=AuditEvent.UPDATED)
        self.assertEqual(entry.properties, {'old': [], 'new': ['127.0.0.1', '10.0.0.0/8']})
        self.assertEqual(entry.user, self.admin)

    def test_welcome_page_requires_title_when_hero_enabled(self):
        """Test an enabled hero needs a title"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.put('/api/v1/acme/welcome-page/', {'hero': {'enabled': True}}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_welcome_page_marks_onboarded(self):
        """Test saving the welcome page completes onboarding"""
        Company.objects.filter(pk=self.company.pk).update(onboarded_at=None)
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(
            '/api/v1/acme/welcome-page/',
            {'hero': {'enabled': True, 'title': 'Welcome'}, 'announcements': [{'title': 'Hi', 'publishedAt': '2026-01-05'}]},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['announcements'][0]['publishedAt'], '2026-01-05')
        self.company.refresh_from_db()
        self.assertIsNotNone(self.company.onboarded_at)

    def test_branding_color(self):
        """Test branding accepts hex colours only"""
        self.client.force_authenticate(user=self.admin)

        bad = self.client.put('/api/v1/acme/settings/branding/', {'color': 'red'}, format='json')
        good = self.client.put('/api/v1/acme/settings/branding/', {'color': '#1a2b3c'}, format='json')

        self.assertEqual(bad.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(good.status_code, status.HTTP_200_OK)
        self.company.refresh_from_db()
        self.assertEqual(self.company.branding['color'], '#1a2b3c')

    def test_cannot_disable_level_in_use(self):
        """Test a level holding units cannot be switched off"""
        Team.objects.create(company=self.company, name='Core', slug='core')
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(
            '/api/v1/acme/settings/organization-levels/',
            {'organization_levels': ['division', 'department']},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_levels_keep_canonical_order(self):
        """Test enabled levels are stored top-down"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(
            '/api/v1/acme/settings/organization-levels/',
            {'organization_levels': ['team', 'division']},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'], ['division', 'team'])

    def test_notification_preferences_merge(self):
        """Test preference updates merge into the stored values"""
        self.client.force_authenticate(user=self.admin)

        self.client.put(
            '/api/v1/acme/settings/notification-preferences/', {'weekly_reminder_enabled': False}, format='json'
        )
        response = self.client.put(
            '/api/v1/acme/settings/notification-preferences/', {'summary_digest_enabled': True}, format='json'
        )

        self.assertEqual(
            response.data['data'], {'weekly_reminder_enabled': False, 'summary_digest_enabled': True}
        )


class HqApiTests(APITestCase):
    """Test HQ company administration"""

    @classmethod
    def setUpTestData(cls):
        cls.hq_admin = User.objects.create_superuser('hq@timesheet-saas.test', PASSWORD, full_name='HQ')
        cls.company = make_company('acme')
        cls.admin = User.objects.create_user(
            email='admin@acme.test', password=PASSWORD, full_name='Admin',
            company=cls.company, role=Role.COMPANY_ADMIN,
        )
        cls.free_user = User.objects.create_user(email='carol@example.test', password=PASSWORD, full_name='Carol')

    def setUp(self):
        self.client.force_authenticate(user=self.hq_admin)

    def test_company_admin_is_not_hq(self):
        """Test tenant admins cannot reach HQ endpoints"""
        self.client.force_authenticate(user=self.admin)

        response = self.client.get('/api/v1/hq/companies/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_companies(self):
        """Test the HQ list is paginated"""
        response = self.client.get('/api/v1/hq/companies/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_create_company_with_admin(self):
        """Test creating a company assigns its first admin"""
        response = self.client.post('/api/v1/hq/companies/', {
            'name': 'Globex', 'slug': 'globex', 'admin_user_id': str(self.free_user.pk),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], CompanyStatus.ONBOARDING)
        self.assertEqual(response.data['current_user_count'], 1)
        self.free_user.refresh_from_db()
        self.assertEqual(self.free_user.role, Role.COMPANY_ADMIN)
        self.assertEqual(self.free_user.company.slug, 'globex')
        self.assertTrue(CompanySetting.objects.filter(company__slug='globex').exists())

    def test_duplicate_slug(self):
        """Test slugs are unique"""
        response = self.client.post('/api/v1/hq/companies/', {'name': 'Acme 2', 'slug': 'acme'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_suspend_company(self):
        """Test suspension stamps suspended_at and is audited"""
        response = self.client.patch(
            f'/api/v1/hq/companies/{self.company.pk}/', {'status': CompanyStatus.SUSPENDED}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['suspended_at'])
        entry = AuditLog.all_objects.get(auditable_kind=AuditableKind.COMPANY, auditable_id=self.company.pk)
        self.assertEqual(entry.properties['status'], {'old': 'active', 'new': 'suspended'})

        response = self.client.patch(
            f'/api/v1/hq/companies/{self.company.pk}/', {'status': CompanyStatus.ACTIVE}, format='json'
        )
        self.assertIsNone(response.data['suspended_at'])

    def test_user_limit(self):
        """Test the user limit can be raised"""
        response = self.client.patch(
            f'/api/v1/hq/companies/{self.company.pk}/user-limit/', {'user_limit': 120}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['user_limit'], 120)


class AuditLogTests(TestCase):
    """Test audit entries are append-only"""

    def setUp(self):
        self.company = make_company('acme')
        self.entry = AuditLog.objects.create(
            company=self.company, event=AuditEvent.CREATED,
            auditable_kind=AuditableKind.COMPANY, auditable_id=self.company.pk,
        )

    def test_cannot_update(self):
        """Test saving an existing entry raises"""
        self.entry.description = 'changed'

        with self.assertRaises(AuditLogImmutable):
            self.entry.save()

    def test_cannot_delete(self):
        """Test deleting an entry raises"""
        with self.assertRaises(AuditLogImmutable):
            self.entry.delete()
        self.assertTrue(AuditLog.all_objects.filter(pk=self.entry.pk).exists())
