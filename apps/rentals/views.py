"""API views for the rentals domain."""

from __future__ import annotations

import logging

from django.db.models import Q  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.products.models import Product
from .exceptions import RentalConflictError
from .models import Feedback, RentalRequest
from .serializers import (
    ActiveRentalSerializer,
    AvailabilityCheckSerializer,
    FeedbackSerializer,
    RentalRequestCreateSerializer,
    RentalRequestSerializer,
    RentalStatusSerializer,
)
from .services import (
    delete_rental_request,
    ensure_product_is_available,
    get_request_limit_info,
    get_unavailable_ranges,
    update_rental_status,
)

logger = logging.getLogger(__name__)


class IsRentalParticipant(permissions.BasePermission):
    """Customers, product owners and administrators can access a rental."""

    def has_object_permission(self, request, view, obj: RentalRequest):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.is_participant(user)


class RentalRequestViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """Viewset for creating and managing rental requests.

    The list shows the caller's own requests as a customer; pass
    ``as_owner=true`` to see requests on the caller's products instead.
    """

    queryset = RentalRequest.objects.select_related(
        "product", "product__owner", "customer"
    ).all()
    permission_classes = [permissions.IsAuthenticated, IsRentalParticipant]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return RentalRequestCreateSerializer
        return RentalRequestSerializer

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if self.action != "list":
            return qs

        user = self.request.user
        if self.request.query_params.get("as_owner") == "true":
            qs = qs.filter(product__owner=user)
        else:
            qs = qs.filter(customer=user)

        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs.order_by("-created_at")

    def perform_create(self, serializer):  # type: ignore
        rental_request = serializer.save()
        logger.info(
            "Rental request %s created by user %s for product %s",
            rental_request.pk,
            self.request.user.pk,
            rental_request.product_id,
        )

    def destroy(self, request, *args, **kwargs):  # type: ignore
        rental_request: RentalRequest = self.get_object()  # type: ignore
        if rental_request.customer_id != request.user.id:
            raise PermissionDenied("Only the customer can delete a rental request.")
        delete_rental_request(rental_request)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["patch"], url_path="status", url_name="status")
    def update_status(self, request, pk=None):  # type: ignore
        rental_request: RentalRequest = self.get_object()  # type: ignore
        serializer = RentalStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        update_rental_status(rental_request, serializer.validated_data["status"], request.user)
        return Response(
            RentalRequestSerializer(rental_request, context=self.get_serializer_context()).data
        )

    @action(
        detail=False,
        methods=["get", "post"],
        permission_classes=[permissions.IsAuthenticatedOrReadOnly],
    )
    def availability(self, request):  # type: ignore
        if request.method == "GET":
            product = get_object_or_404(Product, pk=request.query_params.get("product_id"))
            return Response(
                {
                    "product_id": product.pk,
                    "unavailable_ranges": get_unavailable_ranges(product),
                    "request_limit_info": get_request_limit_info(product),
                }
            )

        serializer = AvailabilityCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product: Product = serializer.validated_data["product"]

        if product.status == Product.Status.UNAVAILABLE:
            return Response(
                {"available": False, "reason": "Product is not available for rent."}
            )

        try:
            ensure_product_is_available(
                product,
                serializer.validated_data["start_date"],
                serializer.validated_data["end_date"],
            )
        except RentalConflictError as exc:
            return Response(
                {"available": False, "reason": str(exc.detail)},
                status=status.HTTP_409_CONFLICT,
            )
        return Response({"available": True})

    @action(detail=False, methods=["get"])
    def active(self, request):  # type: ignore
        qs = (
            RentalRequest.objects.select_related(
                "product", "product__owner", "customer", "product_return"
            )
            .filter(customer=request.user)
            .filter(Q(status=RentalRequest.Status.PAID) | Q(product_return__isnull=False))
            .order_by("end_date")
        )
        serializer = ActiveRentalSerializer(qs, many=True, context=self.get_serializer_context())
        return Response({"results": serializer.data, "checked_at": timezone.now()})

    @action(detail=True, methods=["post"])
    def feedback(self, request, pk=None):  # type: ignore
        rental_request: RentalRequest = self.get_object()  # type: ignore
        if rental_request.customer_id != request.user.id:
            raise PermissionDenied("Only the customer can leave feedback.")

        serializer = FeedbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        feedback, created = Feedback.objects.update_or_create(
            rental_request=rental_request,
            defaults={
                "rating": serializer.validated_data["rating"],
                "feedback": serializer.validated_data.get("feedback", ""),
                "submitted_at": timezone.now(),
            },
        )
        return Response(
            FeedbackSerializer(feedback).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )
