"""
Organization Serializers
========================
"""

from django.conf import settings
from django.utils.text import slugify
from drf_spectacular.utils import extend_schema_field
from rest_framework import serializers

from .models import Division, Department, Team


def invitation_url(company, unit) -> str:
    base = getattr(settings, 'FRONTEND_URL', 'http://localhost:3000').rstrip('/')
    return f"{base}/{company.slug}/register/{unit.invitation_token}?type={unit.level}"


class OrganizationUnitSerializer(serializers.ModelSerializer):
    """
    Shared validation: slug derived from the name when omitted, unique per
    company, and every parent reference must belong to the same company.
    """
    slug = serializers.SlugField(max_length=255, required=False, allow_blank=True, allow_unicode=True)
    members_count = serializers.SerializerMethodField()

    base_fields = [
        'id', 'name', 'slug', 'sort_order', 'is_active', 'invitation_enabled',
        'members_count', 'created_at', 'updated_at'
    ]

    @property
    def company(self):
        return self.context['company']

    @extend_schema_field(serializers.IntegerField())
    def get_members_count(self, obj):
        return obj.users.count()

    def validate_slug(self, value):
        return value.strip() if value else value

    def _check_parent(self, parent, field):
        if parent is not None and parent.company_id != self.company.pk:
            raise serializers.ValidationError({field: '必須屬於同一家公司。'})

    def validate(self, attrs):
        name = attrs.get('name') or getattr(self.instance, 'name', '')
        slug = attrs.get('slug')
        if not slug and self.instance is None:
            slug = slugify(name, allow_unicode=True)[:255]
            if not slug:
                raise serializers.ValidationError({'slug': '無法由名稱產生代碼，請手動填寫。'})
        if slug:
            model = self.Meta.model
            clash = model.all_objects.filter(company=self.company, slug=slug)
            if self.instance is not None:
                clash = clash.exclude(pk=self.instance.pk)
            if clash.exists():
                raise serializers.ValidationError({'slug': '此代碼在公司內已被使用。'})
            attrs['slug'] = slug
        return attrs

    def create(self, validated_data):
        validated_data['company'] = self.company
        return super().create(validated_data)


class DivisionSerializer(OrganizationUnitSerializer):
    class Meta:
        model = Division
        fields = OrganizationUnitSerializer.base_fields
        read_only_fields = ['id', 'invitation_enabled', 'created_at', 'updated_at']


class DepartmentSerializer(OrganizationUnitSerializer):
    division_id = serializers.PrimaryKeyRelatedField(
        source='division', queryset=Division.all_objects.all(), required=False, allow_null=True
    )
    division_name = serializers.SerializerMethodField()

    class Meta:
        model = Department
        fields = OrganizationUnitSerializer.base_fields + ['division_id', 'division_name']
        read_only_fields = ['id', 'invitation_enabled', 'created_at', 'updated_at']

    def get_division_name(self, obj):
        return obj.division.name if obj.division_id else None

    def validate(self, attrs):
        attrs = super().validate(attrs)
        self._check_parent(attrs.get('division'), 'division_id')
        return attrs


class TeamSerializer(OrganizationUnitSerializer):
    division_id = serializers.PrimaryKeyRelatedField(
        source='division', queryset=Division.all_objects.all(), required=False, allow_null=True
    )
    department_id = serializers.PrimaryKeyRelatedField(
        source='department', queryset=Department.all_objects.all(), required=False, allow_null=True
    )
    division_name = serializers.SerializerMethodField()
    department_name = serializers.SerializerMethodField()

    class Meta:
        model = Team
        fields = OrganizationUnitSerializer.base_fields + [
            'division_id', 'division_name', 'department_id', 'department_name'
        ]
        read_only_fields = ['id', 'invitation_enabled', 'created_at', 'updated_at']

    def get_division_name(self, obj):
        return obj.division.name if obj.division_id else None

    def get_department_name(self, obj):
        return obj.department.name if obj.department_id else None

    def validate(self, attrs):
        attrs = super().validate(attrs)
        division = attrs.get('division', getattr(self.instance, 'division', None))
        department = attrs.get('department', getattr(self.instance, 'department', None))
        self._check_parent(division, 'division_id')
        self._check_parent(department, 'department_id')

        if department is not None and department.division_id is not None:
            if division is None:
                attrs['division'] = department.division
            elif division.pk != department.division_id:
                raise serializers.ValidationError({'department_id': '部門不屬於所選的事業群。'})
        return attrs


class InvitationLinkSerializer(serializers.Serializer):
    kind = serializers.CharField()
    invitation_enabled = serializers.BooleanField()
    invitation_token = serializers.CharField(allow_null=True)
    invitation_url = serializers.CharField(allow_null=True)


class InvitationToggleSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
