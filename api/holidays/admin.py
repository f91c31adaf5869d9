from django.contrib import admin

from .models import Holiday


@admin.register(Holiday)
class HolidayAdmin(admin.ModelAdmin):
    list_display = ['holiday_date', 'name', 'category', 'is_holiday', 'is_workday_override', 'iso_week_year', 'iso_week']
    list_filter = ['category', 'is_holiday', 'iso_week_year']
    search_fields = ['name', 'note']
    date_hierarchy = 'holiday_date'
