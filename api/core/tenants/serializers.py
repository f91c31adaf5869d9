"""
Tenant Serializers
==================
DRF serializers for Company, CompanySetting and the tenant settings endpoints.
"""

import re

from rest_framework import serializers

from .ip_matcher import is_valid_rule
from .models import Company, CompanySetting, CompanyStatus, OrganizationLevel

SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
COLOR_PATTERN = re.compile(r'^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')

NOTIFICATION_PREFERENCE_KEYS = [
    'weekly_reminder_enabled',
    'summary_digest_enabled',
    'submission_notice_enabled',
]


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = [
            'id', 'name', 'slug', 'status', 'branding', 'timezone',
            'user_limit', 'current_user_count', 'onboarded_at', 'suspended_at',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class CompanySettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = CompanySetting
        fields = [
            'welcome_page', 'login_ip_whitelist', 'notification_preferences',
            'default_weekly_report_modules', 'organization_levels'
        ]
        read_only_fields = fields


# =================================================================
# Welcome page
# =================================================================

class WelcomeHeroSerializer(serializers.Serializer):
    enabled = serializers.BooleanField(default=False)
    title = serializers.CharField(max_length=120, required=False, allow_blank=True, allow_null=True)
    subtitle = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    backgroundImage = serializers.URLField(max_length=500, required=False, allow_blank=True, allow_null=True)
    videoUrl = serializers.URLField(max_length=500, required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        if attrs.get('enabled') and not attrs.get('title'):
            raise serializers.ValidationError({'title': '啟用主視覺時必須填寫標題。'})
        return attrs


class WelcomeStepSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=120)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)


class WelcomeAnnouncementSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=120)
    content = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    publishedAt = serializers.DateField(required=False, allow_null=True)


class WelcomeContactSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)


class WelcomeCtaSerializer(serializers.Serializer):
    label = serializers.CharField(max_length=60)
    url = serializers.CharField(max_length=500)
    variant = serializers.ChoiceField(choices=['primary', 'secondary'], default='primary')


class WelcomePageSerializer(serializers.Serializer):
    hero = WelcomeHeroSerializer(required=False)
    quickStartSteps = WelcomeStepSerializer(many=True, required=False)
    announcements = WelcomeAnnouncementSerializer(many=True, required=False)
    supportContacts = WelcomeContactSerializer(many=True, required=False)
    ctas = WelcomeCtaSerializer(many=True, required=False)

    def validate_quickStartSteps(self, value):
        if len(value) > 5:
            raise serializers.ValidationError('快速上手步驟最多 5 項。')
        return value

    def validate_ctas(self, value):
        if len(value) > 3:
            raise serializers.ValidationError('行動按鈕最多 3 個。')
        return value

    def to_storage(self):
        """JSON-safe copy of the validated payload"""
        data = dict(self.validated_data)
        for announcement in data.get('announcements', []):
            if announcement.get('publishedAt') is not None:
                announcement['publishedAt'] = announcement['publishedAt'].isoformat()
        return data


# =================================================================
# Settings updates
# =================================================================

class IpWhitelistSerializer(serializers.Serializer):
    login_ip_whitelist = serializers.ListField(
        child=serializers.CharField(max_length=64, allow_blank=True),
        allow_empty=True
    )

    def validate_login_ip_whitelist(self, value):
        cleaned = []
        errors = []
        for entry in value:
            entry = entry.strip()
            if not entry:
                continue
            if not is_valid_rule(entry):
                errors.append(f'{entry} 不是有效的 IP 或 CIDR。')
                continue
            if entry not in cleaned:
                cleaned.append(entry)
        if errors:
            raise serializers.ValidationError(errors)
        return cleaned


class BrandingSerializer(serializers.Serializer):
    color = serializers.RegexField(COLOR_PATTERN, required=False, allow_null=True)
    logo = serializers.URLField(max_length=500, required=False, allow_null=True, allow_blank=True)


class OrganizationLevelsSerializer(serializers.Serializer):
    organization_levels = serializers.ListField(
        child=serializers.ChoiceField(choices=OrganizationLevel.choices),
        allow_empty=True
    )

    def validate_organization_levels(self, value):
        # keep the canonical top-down order
        return [level for level in OrganizationLevel.values if level in value]


class NotificationPreferencesSerializer(serializers.Serializer):
    weekly_reminder_enabled = serializers.BooleanField(required=False)
    summary_digest_enabled = serializers.BooleanField(required=False)
    submission_notice_enabled = serializers.BooleanField(required=False)


# =================================================================
# HQ
# =================================================================

class HqCompanySerializer(serializers.ModelSerializer):
    settings = CompanySettingSerializer(read_only=True)

    class Meta:
        model = Company
        fields = [
            'id', 'name', 'slug', 'status', 'branding', 'timezone',
            'user_limit', 'current_user_count', 'onboarded_at', 'suspended_at',
            'settings', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'current_user_count', 'onboarded_at', 'suspended_at', 'created_at', 'updated_at']


class HqCompanyCreateSerializer(serializers.ModelSerializer):
    slug = serializers.RegexField(SLUG_PATTERN, max_length=255)
    status = serializers.ChoiceField(choices=CompanyStatus.choices, default=CompanyStatus.ONBOARDING)
    user_limit = serializers.IntegerField(min_value=1, max_value=65535, default=50)
    admin_user_id = serializers.UUIDField(required=False, allow_null=True, write_only=True)

    class Meta:
        model = Company
        fields = ['name', 'slug', 'status', 'user_limit', 'timezone', 'branding', 'admin_user_id']

    def validate_slug(self, value):
        if Company.objects.filter(slug=value).exists():
            raise serializers.ValidationError('此代碼已被使用。')
        return value

    def validate_admin_user_id(self, value):
        if value is None:
            return None
        from users.models import User

        user = User.objects.filter(pk=value).first()
        if user is None:
            raise serializers.ValidationError('找不到指定的使用者。')
        if user.is_hq_admin:
            raise serializers.ValidationError('總部管理員不能指派為公司管理員。')
        return user


class HqCompanyUpdateSerializer(serializers.ModelSerializer):
    status = serializers.ChoiceField(choices=CompanyStatus.choices, required=False)

    class Meta:
        model = Company
        fields = ['name', 'status', 'timezone', 'branding']


class UserLimitSerializer(serializers.Serializer):
    user_limit = serializers.IntegerField(min_value=1, max_value=65535)
