"""
Company & Company Settings Models
=================================
The tenant root and its one-to-one settings record.
"""

from django.db import models
from django.utils import timezone

from core.models import BaseModel


class CompanyStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    SUSPENDED = 'suspended', 'Suspended'
    ONBOARDING = 'onboarding', 'Onboarding'


class OrganizationLevel(models.TextChoices):
    DIVISION = 'division', '事業群'
    DEPARTMENT = 'department', '部門'
    TEAM = 'team', '小組'


def default_organization_levels():
    return [OrganizationLevel.DEPARTMENT.value]


class Company(BaseModel):
    """
    租戶模型 - 每個公司代表一個獨立租戶
    """
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, help_text='URL-friendly identifier')
    status = models.CharField(
        max_length=20,
        choices=CompanyStatus.choices,
        default=CompanyStatus.ONBOARDING
    )
    user_limit = models.PositiveIntegerField(default=50)
    current_user_count = models.PositiveIntegerField(default=0)
    timezone = models.CharField(max_length=64, default='Asia/Taipei')
    branding = models.JSONField(null=True, blank=True)
    onboarded_at = models.DateTimeField(null=True, blank=True)
    suspended_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['name']
        verbose_name = 'Company'
        verbose_name_plural = 'Companies'

    def __str__(self):
        return self.name

    @property
    def is_operational(self) -> bool:
        return self.status == CompanyStatus.ACTIVE

    @property
    def has_capacity(self) -> bool:
        return self.current_user_count < self.user_limit

    def get_settings(self) -> 'CompanySetting':
        settings_obj, _ = CompanySetting.objects.get_or_create(company=self)
        return settings_obj

    def apply_status(self, status: str) -> None:
        """Move to ``status`` and keep ``suspended_at`` consistent."""
        if status == CompanyStatus.SUSPENDED and self.status != CompanyStatus.SUSPENDED:
            self.suspended_at = timezone.now()
        elif status != CompanyStatus.SUSPENDED:
            self.suspended_at = None
        self.status = status

    def mark_onboarded(self) -> None:
        if self.onboarded_at is None:
            self.onboarded_at = timezone.now()
            self.save(update_fields=['onboarded_at', 'updated_at'])

    def increment_user_count(self) -> None:
        Company.objects.filter(pk=self.pk).update(
            current_user_count=models.F('current_user_count') + 1
        )
        self.refresh_from_db(fields=['current_user_count'])


class CompanySetting(BaseModel):
    """
    公司設定 - 歡迎頁、IP 白名單、通知偏好、組織層級
    """
    company = models.OneToOneField(Company, on_delete=models.CASCADE, related_name='settings')
    welcome_page = models.JSONField(null=True, blank=True)
    login_ip_whitelist = models.JSONField(default=list, blank=True)
    notification_preferences = models.JSONField(default=dict, blank=True)
    default_weekly_report_modules = models.JSONField(default=list, blank=True)
    organization_levels = models.JSONField(default=default_organization_levels, blank=True)

    class Meta:
        verbose_name = 'Company Setting'
        verbose_name_plural = 'Company Settings'

    def __str__(self):
        return f"Settings for {self.company}"

    def get_enabled_levels(self):
        levels = self.organization_levels
        if not levels:
            return default_organization_levels()
        return list(levels)

    def is_level_enabled(self, level: str) -> bool:
        return level in self.get_enabled_levels()

    def notification_enabled(self, key: str, default: bool = True) -> bool:
        preferences = self.notification_preferences or {}
        return bool(preferences.get(key, default))
