from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from organization.models import Division, Department, Team, UNIT_MODELS
from .models import User, Role, TENANT_ROLES


class UserSerializer(serializers.ModelSerializer):
    company_slug = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'role', 'is_active', 'avatar_url', 'timezone',
            'company_slug', 'division_id', 'department_id', 'team_id', 'registered_via',
            'email_verified_at', 'last_active_at'
        ]
        read_only_fields = fields

    def get_company_slug(self, obj):
        return obj.company.slug if obj.company_id else None


class MemberSerializer(serializers.ModelSerializer):
    """Tenant member row with hierarchy names and invitation state"""
    division = serializers.SerializerMethodField()
    department = serializers.SerializerMethodField()
    team = serializers.SerializerMethodField()
    invitation_status = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'role', 'is_active',
            'division', 'department', 'team', 'invitation_status',
            'invitation_sent_at', 'invitation_accepted_at', 'last_active_at', 'created_at'
        ]
        read_only_fields = fields

    @staticmethod
    def _unit(unit):
        if unit is None:
            return None
        return {'id': str(unit.id), 'name': unit.name}

    def get_division(self, obj):
        return self._unit(obj.division)

    def get_department(self, obj):
        return self._unit(obj.department)

    def get_team(self, obj):
        return self._unit(obj.team)

    def get_invitation_status(self, obj):
        if obj.invitation_token and obj.invitation_accepted_at is None:
            return 'expired' if obj.invitation_expired() else 'pending'
        return 'accepted' if obj.invitation_accepted_at else None


class HierarchyAssignmentSerializer(serializers.Serializer):
    """role plus optional division/department/team, looked up without tenant filtering"""
    role = serializers.ChoiceField(choices=[(role.value, role.label) for role in TENANT_ROLES])
    division_id = serializers.PrimaryKeyRelatedField(
        queryset=Division.all_objects.all(), required=False, allow_null=True
    )
    department_id = serializers.PrimaryKeyRelatedField(
        queryset=Department.all_objects.all(), required=False, allow_null=True
    )
    team_id = serializers.PrimaryKeyRelatedField(
        queryset=Team.all_objects.all(), required=False, allow_null=True
    )


class MemberInviteSerializer(HierarchyAssignmentSerializer):
    email = serializers.EmailField(max_length=255)
    full_name = serializers.CharField(max_length=255)
    role = serializers.ChoiceField(
        choices=[(role.value, role.label) for role in TENANT_ROLES], default=Role.MEMBER
    )


class MemberRoleSerializer(HierarchyAssignmentSerializer):
    pass


class RegisterSerializer(serializers.Serializer):
    """
    Without ``company_slug``: create a new company and its admin.
    With ``company_slug``: join that company as a member.
    """
    full_name = serializers.CharField(max_length=255)
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(write_only=True, min_length=8)
    company_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    company_slug = serializers.SlugField(max_length=255, required=False, allow_blank=True)

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('此電子郵件已被使用。')
        return value

    def validate_password(self, value):
        validate_password(value)
        return value

    def validate(self, attrs):
        if not attrs.get('company_slug') and not attrs.get('company_name'):
            raise serializers.ValidationError({'company_name': '請填寫公司名稱。'})
        return attrs


class InvitationAcceptSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=60)
    password = serializers.CharField(write_only=True, min_length=8)

    def validate_password(self, value):
        validate_password(value)
        return value


class RegisterByInvitationSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=64)
    type = serializers.ChoiceField(choices=list(UNIT_MODELS))
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(write_only=True, min_length=8)

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('此電子郵件已被使用。')
        return value

    def validate_password(self, value):
        validate_password(value)
        return value


class AuthTokensSerializer(serializers.Serializer):
    access = serializers.CharField()
    refresh = serializers.CharField()
    user = serializers.DictField()
