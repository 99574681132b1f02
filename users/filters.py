from django.db.models import Q
from django_filters.rest_framework import BooleanFilter, CharFilter, ChoiceFilter, FilterSet, NumberFilter

from .models import User


class UserFilter(FilterSet):
    search = CharFilter(method='filter_search')
    role = ChoiceFilter(choices=User.Role.choices)
    is_active = BooleanFilter(field_name='is_active')
    min_reputation = NumberFilter(field_name='reputation', lookup_expr='gte')

    class Meta:
        model = User
        fields = ['search', 'role', 'is_active', 'min_reputation']

    def filter_search(self, queryset, name, value):
        return queryset.filter(Q(email__icontains=value) | Q(name__icontains=value))
