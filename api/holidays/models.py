"""
Holiday Models
==============
Public holidays and make-up workdays shared by every tenant.
"""

from django.db import models

from core.models import BaseModel


class HolidayCategory(models.TextChoices):
    NATIONAL = 'national', '國定假日'
    WEEKDAY_OFF = 'weekday_off', '平日放假'
    MAKEUP_WORKDAY = 'makeup_workday', '補行上班'
    WEEKEND = 'weekend', '週末'


class HolidaySource(models.TextChoices):
    NTPC = 'ntpc', 'New Taipei City Open Data'


class HolidayQuerySet(models.QuerySet):
    def for_year(self, year: int):
        return self.filter(holiday_date__year=year).order_by('holiday_date')

    def for_iso_week(self, iso_year: int, iso_week: int):
        return self.filter(iso_week_year=iso_year, iso_week=iso_week).order_by('holiday_date')


class Holiday(BaseModel):
    """
    假期 - 以日期為唯一鍵，不屬於任何租戶
    """
    holiday_date = models.DateField(unique=True)
    name = models.CharField(max_length=255, null=True, blank=True)
    is_holiday = models.BooleanField(default=True)
    category = models.CharField(max_length=32, choices=HolidayCategory.choices, null=True, blank=True)
    note = models.TextField(null=True, blank=True)
    source = models.CharField(max_length=32, choices=HolidaySource.choices, default=HolidaySource.NTPC)
    is_workday_override = models.BooleanField(default=False, help_text='True for makeup workdays')
    iso_week = models.PositiveSmallIntegerField(db_index=True)
    iso_week_year = models.PositiveSmallIntegerField(db_index=True)

    objects = HolidayQuerySet.as_manager()

    class Meta:
        ordering = ['holiday_date']
        indexes = [
            models.Index(fields=['iso_week_year', 'iso_week'], name='holidays_iso_week_idx'),
        ]

    def __str__(self):
        return f"{self.holiday_date} {self.name or ''}".strip()
