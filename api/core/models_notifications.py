"""
Notification Models
==================
In-app notifications and their delivery log.
"""
from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel


class NotificationKind(models.TextChoices):
    """What a notification is about"""
    WEEKLY_REPORT_REMINDER = 'WEEKLY_REPORT_REMINDER', 'Weekly Report Reminder'
    WEEKLY_SUMMARY_DIGEST = 'WEEKLY_SUMMARY_DIGEST', 'Weekly Summary Digest'
    WEEKLY_REPORT_SUBMITTED = 'WEEKLY_REPORT_SUBMITTED', 'Weekly Report Submitted'
    MEMBER_INVITATION = 'MEMBER_INVITATION', 'Member Invitation'


class DeliveryChannel(models.TextChoices):
    EMAIL = 'EMAIL', 'Email'
    IN_APP = 'IN_APP', 'In-App'


class DeliveryStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    SENT = 'SENT', 'Sent'
    DELIVERED = 'DELIVERED', 'Delivered'
    FAILED = 'FAILED', 'Failed'


class Notification(BaseModel):
    """
    In-app notification model
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    company = models.ForeignKey(
        'core.Company',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notifications'
    )
    kind = models.CharField(max_length=40, choices=NotificationKind.choices)

    title = models.CharField(max_length=255)
    message = models.TextField()
    action_url = models.CharField(max_length=500, null=True, blank=True)
    data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='core_notifi_user_id_3b7c1a_idx'),
            models.Index(fields=['user', 'kind'], name='core_notifi_user_id_9e4f2d_idx'),
        ]

    def __str__(self):
        return f"{self.title} - {self.user.email}"

    def mark_as_read(self):
        """Mark notification as read"""
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])


class NotificationLog(BaseModel):
    """
    Log of notification deliveries per channel
    """
    notification = models.ForeignKey(
        Notification,
        on_delete=models.CASCADE,
        related_name='delivery_logs',
        null=True,
        blank=True
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notification_logs'
    )
    channel = models.CharField(max_length=20, choices=DeliveryChannel.choices)
    status = models.CharField(max_length=20, choices=DeliveryStatus.choices, default=DeliveryStatus.PENDING)
    recipient = models.CharField(max_length=255)
    subject = models.CharField(max_length=255, null=True, blank=True)
    content = models.TextField()
    sent_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'channel'], name='core_notifi_user_id_c81e5a_idx'),
            models.Index(fields=['status'], name='core_notifi_status_4d2b9f_idx'),
        ]

    def __str__(self):
        return f"{self.channel} to {self.recipient} - {self.status}"
