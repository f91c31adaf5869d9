"""
Holiday URL Configuration
=========================
Mounted under ``api/v1/<company>/``.
"""

from django.urls import path

from .views import HolidayListView, HolidayWeekView

urlpatterns = [
    path('holidays/', HolidayListView.as_view(), name='holiday-list'),
    path('holidays/week/', HolidayWeekView.as_view(), name='holiday-week'),
]
