"""
Weekly Report Tasks
===================
Periodic notification batches, scheduled by Celery beat.
"""

import logging
from celery import shared_task

from .services import jobs

logger = logging.getLogger(__name__)


@shared_task(name='weekly_reports.tasks.send_weekly_report_reminders')
def send_weekly_report_reminders():
    """
    Remind members who have not submitted this week's report.

    Returns:
        int: number of reminders sent
    """
    logger.info("Starting weekly report reminder task")
    return jobs.send_weekly_report_reminders()


@shared_task(name='weekly_reports.tasks.send_weekly_summary_digest')
def send_weekly_summary_digest(work_week: int = None):
    """
    Send last week's summary to each onboarded company's managers.

    Args:
        work_week: ISO week of the current year (default: previous week)

    Returns:
        int: number of digests sent
    """
    logger.info("Starting weekly summary digest task")
    return jobs.send_weekly_summary_digest(work_week=work_week)
