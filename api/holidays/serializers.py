from rest_framework import serializers

from .models import Holiday


class HolidaySerializer(serializers.ModelSerializer):
    """Serializes Holiday rows and the cached dicts built from them"""
    date = serializers.DateField(source='holiday_date')

    class Meta:
        model = Holiday
        fields = ['date', 'name', 'is_holiday', 'category', 'note', 'is_workday_override']
        read_only_fields = fields


class HolidayYearQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(
        required=False, min_value=2020, max_value=2030,
        error_messages={
            'min_value': 'Invalid year. Must be between 2020 and 2030.',
            'max_value': 'Invalid year. Must be between 2020 and 2030.',
        }
    )


class HolidayWeekQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(required=False, min_value=2000, max_value=2100)
    week = serializers.IntegerField(
        required=False, min_value=1, max_value=53,
        error_messages={
            'min_value': 'Invalid ISO week. Must be between 1 and 53.',
            'max_value': 'Invalid ISO week. Must be between 1 and 53.',
        }
    )
