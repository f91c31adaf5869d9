from decimal import Decimal

from rest_framework import ISO_8601, serializers

from . import weeks
from .models import WeeklyReport, WeeklyReportItem

DATETIME_INPUT_FORMATS = [ISO_8601, '%Y-%m-%d']


class TagListField(serializers.ListField):
    """Trimmed, de-duplicated tags; blank entries are dropped"""
    child = serializers.CharField(max_length=50, allow_blank=True)

    def to_internal_value(self, data):
        tags = []
        for tag in super().to_internal_value(data):
            if tag and tag not in tags:
                tags.append(tag)
        return tags


def hours_field(**kwargs):
    return serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=200, required=False, allow_null=True, **kwargs
    )


class ItemInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    content = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    planned_hours = hours_field()
    issue_reference = serializers.CharField(max_length=191, required=False, allow_blank=True, allow_null=True)
    tags = TagListField(required=False, default=list)
    started_at = serializers.DateTimeField(required=False, allow_null=True, input_formats=DATETIME_INPUT_FORMATS)
    ended_at = serializers.DateTimeField(required=False, allow_null=True, input_formats=DATETIME_INPUT_FORMATS)
    metadata = serializers.DictField(required=False, allow_null=True)

    def validate(self, attrs):
        started_at, ended_at = attrs.get('started_at'), attrs.get('ended_at')
        if started_at and ended_at and ended_at < started_at:
            raise serializers.ValidationError({'ended_at': '結束日期不能早於開始日期。'})
        return attrs


class CurrentWeekItemSerializer(ItemInputSerializer):
    hours_spent = hours_field()
    is_billable = serializers.BooleanField(required=False, default=False)


class NextWeekItemSerializer(ItemInputSerializer):
    pass


class WeeklyReportContentSerializer(serializers.Serializer):
    """Summary, metadata and the full item set of a report"""
    summary = serializers.CharField(max_length=2000, required=False, allow_blank=True, allow_null=True)
    metadata = serializers.DictField(required=False, allow_null=True)
    current_week = CurrentWeekItemSerializer(many=True, required=False)
    next_week = NextWeekItemSerializer(many=True, required=False)


class WeeklyReportCreateSerializer(WeeklyReportContentSerializer):
    work_year = serializers.IntegerField(min_value=weeks.MIN_YEAR, max_value=weeks.MAX_YEAR)
    work_week = serializers.IntegerField(min_value=weeks.MIN_WEEK, max_value=weeks.MAX_WEEK)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        last_week = weeks.weeks_in_year(attrs['work_year'])
        if attrs['work_week'] > last_week:
            raise serializers.ValidationError(
                {'work_week': f'{attrs["work_year"]} 年只有 {last_week} 週。'}
            )
        return attrs


class WeeklyReportItemSerializer(serializers.ModelSerializer):
    hours_spent = serializers.DecimalField(max_digits=5, decimal_places=2, coerce_to_string=False)
    planned_hours = serializers.DecimalField(
        max_digits=5, decimal_places=2, coerce_to_string=False, allow_null=True
    )

    class Meta:
        model = WeeklyReportItem
        fields = [
            'id', 'type', 'sort_order', 'title', 'content', 'hours_spent', 'planned_hours',
            'issue_reference', 'is_billable', 'tags', 'started_at', 'ended_at', 'metadata'
        ]
        read_only_fields = fields


def _hours(value: Decimal) -> float:
    return float(round(value, 2))


class WeeklyReportListSerializer(serializers.ModelSerializer):
    total_hours = serializers.SerializerMethodField()
    week_range = serializers.SerializerMethodField()

    class Meta:
        model = WeeklyReport
        fields = [
            'id', 'work_year', 'work_week', 'status', 'summary', 'submitted_at',
            'created_at', 'updated_at', 'total_hours', 'week_range'
        ]
        read_only_fields = fields

    def get_total_hours(self, obj):
        return _hours(obj.total_hours())

    def get_week_range(self, obj):
        return weeks.week_date_range(obj.work_year, obj.work_week)


class WeeklyReportDetailSerializer(WeeklyReportListSerializer):
    user = serializers.SerializerMethodField()
    current_week = serializers.SerializerMethodField()
    next_week = serializers.SerializerMethodField()
    totals = serializers.SerializerMethodField()
    next_week_range = serializers.SerializerMethodField()

    class Meta(WeeklyReportListSerializer.Meta):
        fields = WeeklyReportListSerializer.Meta.fields + [
            'user', 'division_id', 'department_id', 'team_id', 'metadata',
            'submitted_by_id', 'approved_at', 'approved_by_id', 'locked_at',
            'current_week', 'next_week', 'totals', 'next_week_range'
        ]
        read_only_fields = fields

    def get_user(self, obj):
        return {'id': str(obj.user_id), 'full_name': obj.user.full_name, 'email': obj.user.email}

    def get_current_week(self, obj):
        return WeeklyReportItemSerializer(obj.current_week_items(), many=True).data

    def get_next_week(self, obj):
        return WeeklyReportItemSerializer(obj.next_week_items(), many=True).data

    def get_totals(self, obj):
        return {
            'total_hours': _hours(obj.total_hours()),
            'billable_hours': _hours(obj.billable_hours()),
            'planned_hours': _hours(obj.planned_hours()),
        }

    def get_next_week_range(self, obj):
        return weeks.week_date_range(*weeks.shift_week(obj.work_year, obj.work_week, 1))


class WeeklyReportListQuerySerializer(serializers.Serializer):
    filter_year = serializers.CharField(required=False)
    filter_status = serializers.CharField(required=False)


class WeekQuerySerializer(serializers.Serializer):
    """Raw values; out-of-range or non-numeric input falls back in weeks.resolve_week"""
    work_year = serializers.CharField(required=False, allow_blank=True)
    work_week = serializers.CharField(required=False, allow_blank=True)


class SummaryQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(required=False, min_value=weeks.MIN_YEAR, max_value=weeks.MAX_YEAR)
    week = serializers.IntegerField(required=False, min_value=weeks.MIN_WEEK, max_value=weeks.MAX_WEEK)
    division_id = serializers.UUIDField(required=False)
    department_id = serializers.UUIDField(required=False)
    team_id = serializers.UUIDField(required=False)
    export = serializers.ChoiceField(choices=['csv', 'xlsx'], required=False)
