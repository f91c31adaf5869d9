"""
Notification Views
==================
API views for the current user's notifications.
"""
from rest_framework import mixins, viewsets, filters
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view

from core.models_notifications import Notification
from core.serializers_notifications import NotificationSerializer, MarkNotificationsReadSerializer
from core.services.notification_service import NotificationService


@extend_schema_view(
    list=extend_schema(
        tags=['Notifications'],
        summary='通知列表 / List Notifications',
        description='取得目前使用者的通知。\n\nGet all notifications for the current user.'
    ),
    retrieve=extend_schema(
        tags=['Notifications'],
        summary='取得通知 / Get Notification',
        description='依 ID 取得單一通知。\n\nGet a specific notification by ID.'
    ),
)
class NotificationViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Read-only access to the caller's notifications, plus read-marking actions
    """
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['is_read', 'kind']
    ordering_fields = ['created_at']
    ordering = ['-created_at']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Notification.objects.none()
        return Notification.objects.filter(user=self.request.user).select_related('company')

    @extend_schema(
        tags=['Notifications'],
        summary='標記已讀 / Mark as Read',
        description='標記指定通知或全部通知為已讀。\n\nMark the given notifications, or all of them, as read.',
        request=MarkNotificationsReadSerializer,
    )
    @action(detail=False, methods=['post'], url_path='mark-read')
    def mark_read(self, request):
        serializer = MarkNotificationsReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        if serializer.validated_data.get('mark_all'):
            count = NotificationService.mark_all_as_read(request.user)
        else:
            ids = serializer.validated_data.get('notification_ids', [])
            count = NotificationService.mark_as_read(ids, request.user)

        return Response({
            'success': True,
            'data': {'updated': count},
            'message': f'已標記 {count} 則通知為已讀',
        })

    @extend_schema(
        tags=['Notifications'],
        summary='未讀數量 / Unread Count',
        description='取得未讀通知數量。\n\nGet the number of unread notifications.',
    )
    @action(detail=False, methods=['get'], url_path='unread-count')
    def unread_count(self, request):
        return Response({
            'success': True,
            'data': {'unread': NotificationService.get_unread_count(request.user)},
        })
