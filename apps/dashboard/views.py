"""API views for the dashboard.

Each view returns one aggregate for the authenticated user; the heavy
lifting lives in :mod:`apps.dashboard.services`.
"""

from __future__ import annotations

from rest_framework.permissions import IsAuthenticated  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from . import services


class DashboardStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, format=None):  # type: ignore
        return Response(services.get_stats(request.user))


class DashboardRevenueView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, format=None):  # type: ignore
        return Response(services.get_revenue(request.user))


class CalendarEventsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, format=None):  # type: ignore
        return Response({"events": services.get_calendar_events(request.user)})


class RecentActivitiesView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, format=None):  # type: ignore
        return Response({"activities": services.get_recent_activities(request.user)})


class UpcomingEventsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, format=None):  # type: ignore
        return Response({"events": services.get_upcoming_events(request.user)})


class DownloadStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, format=None):  # type: ignore
        return Response(services.get_download_stats(request.user))
