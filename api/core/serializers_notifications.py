"""
Notification Serializers
========================
"""
from rest_framework import serializers

from core.models_notifications import Notification


class NotificationSerializer(serializers.ModelSerializer):
    company_slug = serializers.CharField(source='company.slug', read_only=True, default=None)

    class Meta:
        model = Notification
        fields = [
            'id', 'kind', 'company_slug', 'title', 'message', 'action_url', 'data',
            'is_read', 'read_at', 'created_at'
        ]
        read_only_fields = fields


class MarkNotificationsReadSerializer(serializers.Serializer):
    """Either a list of ids or mark_all=true"""
    notification_ids = serializers.ListField(
        child=serializers.UUIDField(),
        required=False,
        allow_empty=False,
        help_text='Notifications to mark as read'
    )
    mark_all = serializers.BooleanField(
        default=False,
        help_text='Mark every unread notification as read'
    )

    def validate(self, attrs):
        if not attrs.get('mark_all') and not attrs.get('notification_ids'):
            raise serializers.ValidationError('請指定 notification_ids 或 mark_all。')
        return attrs
