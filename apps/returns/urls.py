"""URL routing for returns and damage assessments."""

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import DamageAssessmentViewSet, ProductReturnViewSet

router = DefaultRouter()
router.register(r"returns", ProductReturnViewSet, basename="return")
router.register(r"damage-assessments", DamageAssessmentViewSet, basename="damage-assessment")

urlpatterns = [path("", include(router.urls))]
