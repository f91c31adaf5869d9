from datetime import timedelta

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager, Group, Permission
from django.db import models
from django.utils import timezone
from django.utils.crypto import get_random_string

from core.models import BaseModel
from core.tenants.conf import tenant_setting
from core.tenants.context import company_id_of


class Role(models.TextChoices):
    MEMBER = 'member', '成員'
    TEAM_LEAD = 'team_lead', '小組長'
    DEPARTMENT_MANAGER = 'department_manager', '部門主管'
    DIVISION_LEAD = 'division_lead', '事業群主管'
    COMPANY_ADMIN = 'company_admin', '公司管理員'
    HQ_ADMIN = 'hq_admin', '總部管理員'


# Roles assignable inside a tenant (hq_admin is reserved for HQ superusers)
TENANT_ROLES = [
    Role.MEMBER, Role.TEAM_LEAD, Role.DEPARTMENT_MANAGER, Role.DIVISION_LEAD, Role.COMPANY_ADMIN,
]
MANAGER_ROLES = [Role.TEAM_LEAD, Role.DEPARTMENT_MANAGER, Role.DIVISION_LEAD, Role.COMPANY_ADMIN]
DIGEST_ROLES = [Role.COMPANY_ADMIN, Role.DIVISION_LEAD, Role.DEPARTMENT_MANAGER]


class RegisteredVia(models.TextChoices):
    SELF_REGISTER = 'self-register', 'Self register'
    TENANT_REGISTER = 'tenant-register', 'Tenant register'
    INVITATION = 'invitation', 'Invitation'
    INVITATION_LINK = 'invitation-link', 'Invitation link'
    GOOGLE_SELF_REGISTER = 'google-self-register', 'Google self register'
    GOOGLE_TENANT_REGISTER = 'google-tenant-register', 'Google tenant register'
    GOOGLE_INVITATION_LINK = 'google-invitation-link', 'Google invitation link'
    SEED = 'seed', 'Seed'


def generate_invitation_token() -> str:
    return get_random_string(60)


class UserQuerySet(models.QuerySet):
    def for_tenant(self, tenant):
        return self.filter(company_id=company_id_of(tenant))

    def managers(self):
        return self.filter(role__in=MANAGER_ROLES)

    def pending_invitation(self, token):
        return self.filter(invitation_token=token, invitation_accepted_at__isnull=True)


class UserManager(BaseUserManager.from_queryset(UserQuerySet)):
    def create_user(self, email=None, password=None, **extra_fields):
        if not email:
            raise ValueError("Users must have an email address")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', Role.HQ_ADMIN)
        return self.create_user(email, password, **extra_fields)


class User(BaseModel, AbstractBaseUser, PermissionsMixin):
    """
    A person who signs in. Tenant members carry a company; HQ admins do not.
    """
    Roles = Role

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=255)
    role = models.CharField(max_length=32, choices=Role.choices, default=Role.MEMBER)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    company = models.ForeignKey(
        'core.Company',
        on_delete=models.CASCADE,
        related_name='users',
        null=True,
        blank=True
    )
    division = models.ForeignKey(
        'organization.Division', on_delete=models.SET_NULL, related_name='users', null=True, blank=True
    )
    department = models.ForeignKey(
        'organization.Department', on_delete=models.SET_NULL, related_name='users', null=True, blank=True
    )
    team = models.ForeignKey(
        'organization.Team', on_delete=models.SET_NULL, related_name='users', null=True, blank=True
    )

    # Profile
    avatar_url = models.URLField(max_length=500, blank=True, null=True)
    timezone = models.CharField(max_length=64, default='Asia/Taipei')

    # Deferred-password invitations
    invitation_token = models.CharField(max_length=60, unique=True, null=True, blank=True)
    invitation_sent_at = models.DateTimeField(null=True, blank=True)
    invitation_accepted_at = models.DateTimeField(null=True, blank=True)

    # Google OAuth linkage
    google_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    registered_via = models.CharField(
        max_length=32, choices=RegisteredVia.choices, default=RegisteredVia.SELF_REGISTER
    )
    email_verified_at = models.DateTimeField(null=True, blank=True)
    last_active_at = models.DateTimeField(null=True, blank=True)

    groups = models.ManyToManyField(
        Group,
        related_name='custom_user_groups',
        blank=True,
        help_text='The groups this user belongs to.',
        verbose_name='groups'
    )
    user_permissions = models.ManyToManyField(
        Permission,
        related_name='custom_user_permissions',
        blank=True,
        help_text='Specific permissions for this user.',
        verbose_name='user permissions'
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        ordering = ['full_name', 'email']

    def __str__(self):
        return self.email

    @property
    def is_company_admin(self) -> bool:
        return self.role == Role.COMPANY_ADMIN

    @property
    def is_hq_admin(self) -> bool:
        return self.role == Role.HQ_ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    def belongs_to(self, tenant) -> bool:
        return self.company_id is not None and self.company_id == company_id_of(tenant)

    def hierarchy_ids(self) -> dict:
        return {
            'division_id': self.division_id,
            'department_id': self.department_id,
            'team_id': self.team_id,
        }

    def issue_invitation(self) -> str:
        token = generate_invitation_token()
        while User.objects.filter(invitation_token=token).exists():
            token = generate_invitation_token()
        self.invitation_token = token
        self.invitation_sent_at = timezone.now()
        self.invitation_accepted_at = None
        return token

    def invitation_expired(self, now=None) -> bool:
        if self.invitation_sent_at is None:
            return True
        now = now or timezone.now()
        ttl = timedelta(days=tenant_setting('INVITATION_TTL_DAYS'))
        return self.invitation_sent_at + ttl < now

    def accept_invitation(self, password: str) -> None:
        now = timezone.now()
        self.set_password(password)
        self.invitation_token = None
        self.invitation_accepted_at = now
        if self.email_verified_at is None:
            self.email_verified_at = now
        self.save()
