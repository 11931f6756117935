"""User API views."""

from __future__ import annotations

from rest_framework import generics, permissions  # type: ignore

from .serializers import ProfileSerializer


class ProfileView(generics.RetrieveUpdateAPIView):
    """Profile of the authenticated user.

    - `GET` returns the profile with product, rental and wishlist counters
    - `PATCH` updates name, phone, bio, location and avatar
    """

    serializer_class = ProfileSerializer
    permission_classes = [permissions.IsAuthenticated]
    http_method_names = ["get", "patch", "head", "options"]

    def get_object(self):  # type: ignore
        return self.request.user
