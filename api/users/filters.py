import django_filters
from django.db.models import Q

from .models import User, Role


class MemberFilter(django_filters.FilterSet):
    role = django_filters.ChoiceFilter(choices=Role.choices)
    division_id = django_filters.UUIDFilter(field_name='division_id')
    department_id = django_filters.UUIDFilter(field_name='department_id')
    team_id = django_filters.UUIDFilter(field_name='team_id')
    keyword = django_filters.CharFilter(method='filter_keyword')

    class Meta:
        model = User
        fields = ['role']

    def filter_keyword(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(full_name__icontains=value) | Q(email__icontains=value))
