"""URL routing for dashboard endpoints."""

from django.urls import path  # type: ignore

from .views import (
    CalendarEventsView,
    DashboardRevenueView,
    DashboardStatsView,
    DownloadStatsView,
    RecentActivitiesView,
    UpcomingEventsView,
)


urlpatterns = [
    # Mounted under api/v1/dashboard/ in config.urls
    path('stats/', DashboardStatsView.as_view(), name='dashboard-stats'),
    path('revenue/', DashboardRevenueView.as_view(), name='dashboard-revenue'),
    path('calendar-events/', CalendarEventsView.as_view(), name='dashboard-calendar-events'),
    path('recent-activities/', RecentActivitiesView.as_view(), name='dashboard-recent-activities'),
    path('upcoming-events/', UpcomingEventsView.as_view(), name='dashboard-upcoming-events'),
    path('download-stats/', DownloadStatsView.as_view(), name='dashboard-download-stats'),
]
