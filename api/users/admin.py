from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'full_name', 'company', 'role', 'team', 'has_pending_invitation', 'is_active']
    list_display_links = ['email', 'full_name']
    list_filter = ['role', 'registered_via', 'is_active', 'company']
    list_select_related = ['company', 'team']
    search_fields = ['email', 'full_name', 'company__slug', 'company__name']
    readonly_fields = [
        'id', 'created_at', 'updated_at', 'last_login', 'last_active_at',
        'invitation_token', 'invitation_sent_at', 'invitation_accepted_at',
    ]
    # Hierarchy pickers would otherwise load every unit of every company
    raw_id_fields = ['company', 'division', 'department', 'team']
    ordering = ['company__slug', 'email']
    actions = ['deactivate_members']

    fieldsets = (
        (None, {
            'fields': ('email', 'password')
        }),
        ('Profile', {
            'fields': ('full_name', 'avatar_url', 'timezone', 'google_id')
        }),
        ('Company & Hierarchy', {
            'fields': ('company', 'role', 'division', 'department', 'team')
        }),
        ('Invitation', {
            'classes': ('collapse',),
            'fields': ('registered_via', 'invitation_token', 'invitation_sent_at', 'invitation_accepted_at')
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser')
        }),
        ('Activity', {
            'fields': ('last_login', 'last_active_at', 'email_verified_at', 'created_at', 'updated_at')
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'full_name', 'password1', 'password2', 'company', 'role'),
        }),
    )

    @admin.display(boolean=True, description='Pending invite')
    def has_pending_invitation(self, obj):
        return bool(obj.invitation_token) and obj.invitation_accepted_at is None

    @admin.action(description='Deactivate selected members')
    def deactivate_members(self, request, queryset):
        updated = queryset.filter(is_superuser=False).update(is_active=False)
        self.message_user(request, f'{updated} member(s) deactivated.')
