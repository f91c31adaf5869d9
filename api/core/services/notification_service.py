"""
Notification Service
====================
Service layer for creating and sending notifications.
"""
import logging
from typing import List, Optional, Dict, Any

from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from core.models_notifications import (
    Notification, NotificationLog, NotificationKind, DeliveryChannel, DeliveryStatus,
)
from core.tenants.conf import tenant_setting

logger = logging.getLogger(__name__)


def frontend_url(path: str) -> str:
    base = getattr(settings, 'FRONTEND_URL', 'http://localhost:3000').rstrip('/')
    return f"{base}/{path.lstrip('/')}"


class NotificationService:
    """
    Service for creating and delivering notifications
    """

    @classmethod
    def create_notification(
        cls,
        user,
        kind: str,
        title: str,
        message: str,
        company=None,
        action_url: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        send_email: bool = True,
    ) -> Notification:
        """
        Create an in-app notification and optionally email it
        """
        notification = Notification.objects.create(
            user=user,
            company=company,
            kind=kind,
            title=title,
            message=message,
            action_url=action_url,
            data=data or {},
        )

        NotificationLog.objects.create(
            notification=notification,
            user=user,
            channel=DeliveryChannel.IN_APP,
            status=DeliveryStatus.DELIVERED,
            recipient=str(user.id),
            content=message,
            sent_at=timezone.now(),
        )

        if send_email and user.email:
            cls.send_email_notification(notification, user)

        return notification

    @classmethod
    def create_bulk_notification(cls, users: List, kind: str, title: str, message: str, **kwargs) -> List[Notification]:
        """
        Create the same notification for several users
        """
        return [
            cls.create_notification(user=user, kind=kind, title=title, message=message, **kwargs)
            for user in users
        ]

    @classmethod
    def send_email_notification(cls, notification: Notification, user) -> bool:
        """
        Send notification via email
        """
        plain_message = f"{notification.message}"
        if notification.action_url:
            plain_message += f"\n\n{notification.action_url}"

        log = NotificationLog.objects.create(
            notification=notification,
            user=user,
            channel=DeliveryChannel.EMAIL,
            status=DeliveryStatus.PENDING,
            recipient=user.email,
            subject=notification.title,
            content=plain_message,
        )

        try:
            sent = send_mail(
                subject=notification.title,
                message=plain_message,
                from_email=getattr(settings, 'DEFAULT_FROM_EMAIL', 'noreply@timesheet-saas.test'),
                recipient_list=[user.email],
            )
        except Exception as exc:
            logger.warning("Email delivery failed for notification %s: %s", notification.id, exc)
            log.status = DeliveryStatus.FAILED
            log.error_message = str(exc)
            log.save(update_fields=['status', 'error_message', 'updated_at'])
            return False

        if sent:
            log.status = DeliveryStatus.SENT
            log.sent_at = timezone.now()
        else:
            log.status = DeliveryStatus.FAILED
            log.error_message = 'Email sending failed'
        log.save(update_fields=['status', 'sent_at', 'error_message', 'updated_at'])
        return bool(sent)

    @classmethod
    def mark_as_read(cls, notification_ids: List[str], user) -> int:
        return Notification.objects.filter(
            id__in=notification_ids,
            user=user,
            is_read=False
        ).update(is_read=True, read_at=timezone.now())

    @classmethod
    def mark_all_as_read(cls, user) -> int:
        return Notification.objects.filter(user=user, is_read=False).update(
            is_read=True, read_at=timezone.now()
        )

    @classmethod
    def get_unread_count(cls, user) -> int:
        return Notification.objects.filter(user=user, is_read=False).count()

    # Weekly report notifications

    @classmethod
    def notify_weekly_report_reminder(cls, user, company, work_year: int, work_week: int):
        """Remind a member to submit this week's report"""
        return cls.create_notification(
            user=user,
            company=company,
            kind=NotificationKind.WEEKLY_REPORT_REMINDER,
            title=f"[{company.name}] 週報提醒 - 第 {work_week} 週",
            message=f"{user.full_name or user.email}，您尚未送出 {work_year} 年第 {work_week} 週的週報。",
            action_url=frontend_url(f"{company.slug}/weekly-reports/create"),
            data={
                'company_id': str(company.id),
                'work_year': work_year,
                'work_week': work_week,
            },
        )

    @classmethod
    def notify_weekly_summary_digest(cls, user, company, work_year: int, work_week: int, summary: Dict[str, Any]):
        """Send the weekly summary digest to a manager"""
        return cls.create_notification(
            user=user,
            company=company,
            kind=NotificationKind.WEEKLY_SUMMARY_DIGEST,
            title=f"[{company.name}] 週報匯總 - 第 {work_week} 週",
            message=(
                f"{work_year} 年第 {work_week} 週：共 {summary['report_count']} 份週報，"
                f"已送出 {summary['submitted_count']} 份，草稿 {summary['draft_count']} 份，"
                f"總工時 {summary['total_hours']} 小時（計費 {summary['billable_hours']} 小時）。"
            ),
            action_url=frontend_url(
                f"{company.slug}/weekly-reports/summary?year={work_year}&week={work_week}"
            ),
            data={
                'company_id': str(company.id),
                'work_year': work_year,
                'work_week': work_week,
                'summary': summary,
            },
        )

    @classmethod
    def notify_weekly_report_submitted(cls, manager, company, report, submitted_by):
        """Tell a manager that a report was submitted"""
        return cls.create_notification(
            user=manager,
            company=company,
            kind=NotificationKind.WEEKLY_REPORT_SUBMITTED,
            title=f"[{company.name}] {submitted_by.full_name or submitted_by.email} 已提交週報",
            message=f"{report.work_year} 年第 {report.work_week} 週週報已送出。",
            action_url=frontend_url(f"{company.slug}/weekly-reports/{report.id}/preview"),
            data={
                'company_id': str(company.id),
                'weekly_report_id': str(report.id),
                'submitted_by': str(submitted_by.id),
            },
        )

    @classmethod
    def notify_member_invitation(cls, user, company, invitation_token: str, inviter_name: str):
        """Invite a member to set a password and join"""
        ttl_days = tenant_setting('INVITATION_TTL_DAYS')
        return cls.create_notification(
            user=user,
            company=company,
            kind=NotificationKind.MEMBER_INVITATION,
            title=f"邀請加入 {company.name}",
            message=(
                f"您好，{user.full_name}！{inviter_name} 邀請您加入 {company.name} 的週報系統。"
                f"此邀請連結將在 {ttl_days} 天後過期。"
            ),
            action_url=frontend_url(f"{company.slug}/invitations/{invitation_token}"),
            data={
                'company_id': str(company.id),
                'company_name': company.name,
                'inviter_name': inviter_name,
            },
        )
