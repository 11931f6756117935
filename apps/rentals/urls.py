"""URL routing for rental requests."""

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import RentalRequestViewSet

router = DefaultRouter()
router.register(r"", RentalRequestViewSet, basename="rental-request")

urlpatterns = [path("", include(router.urls))]
