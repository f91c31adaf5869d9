from django.contrib import admin

from .models import WeeklyReport, WeeklyReportItem


class WeeklyReportItemInline(admin.TabularInline):
    model = WeeklyReportItem
    extra = 0
    fields = ['type', 'sort_order', 'title', 'hours_spent', 'planned_hours', 'is_billable', 'issue_reference']


@admin.register(WeeklyReport)
class WeeklyReportAdmin(admin.ModelAdmin):
    list_display = ['user', 'company', 'work_year', 'work_week', 'status', 'submitted_at', 'locked_at']
    list_filter = ['status', 'work_year', 'company']
    search_fields = ['user__email', 'user__full_name', 'summary']
    raw_id_fields = ['company', 'user', 'division', 'department', 'team', 'submitted_by', 'approved_by']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [WeeklyReportItemInline]

    def get_queryset(self, request):
        return WeeklyReport.all_objects.select_related('user', 'company')
