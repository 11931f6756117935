"""API views for product returns and damage assessments."""

from __future__ import annotations

import logging

from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied, ValidationError  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.invoices.services import apply_damage_assessment
from .models import DamageAssessment, DamagePhoto, ProductReturn
from .serializers import (
    DamageAssessmentSerializer,
    DamagePhotoSerializer,
    ProductReturnCreateSerializer,
    ProductReturnSerializer,
    ProductReturnUpdateSerializer,
)
from .services import (
    DuplicateAssessmentError,
    DuplicateReturnError,
    assess_damage,
    complete_return,
    initiate_return,
)

logger = logging.getLogger(__name__)

OWNER_ONLY_FIELDS = ("owner_confirmation",)


class ProductReturnViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Returns seen from the customer side by default.

    ``as_owner=true`` lists returns of the caller's products and
    ``rental_request_id`` narrows to one rental from either side.
    """

    serializer_class = ProductReturnSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = ProductReturn.objects.select_related(
            "rental_request",
            "rental_request__product",
            "rental_request__product__owner",
            "rental_request__customer",
            "damage_assessment",
        )
        participant = Q(rental_request__customer=user) | Q(rental_request__product__owner=user)
        if self.action != "list":
            return qs.filter(participant)

        params = self.request.query_params
        if params.get("rental_request_id"):
            qs = qs.filter(participant, rental_request_id=params["rental_request_id"])
        elif params.get("as_owner") == "true":
            qs = qs.filter(rental_request__product__owner=user)
        else:
            qs = qs.filter(rental_request__customer=user)
        return qs.order_by("-created_at")

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = ProductReturnCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        rental_request = data.pop("rental_request")

        if not rental_request.is_participant(request.user):
            raise PermissionDenied("Only the customer or the owner can initiate a return.")

        try:
            product_return = initiate_return(rental_request, **data)
        except DuplicateReturnError as exc:
            raise ValidationError({"non_field_errors": [str(exc)]})

        return Response(ProductReturnSerializer(product_return).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        product_return: ProductReturn = self.get_object()  # type: ignore
        is_owner = product_return.rental_request.product.owner_id == request.user.id

        serializer = ProductReturnUpdateSerializer(product_return, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        completing = data.get("return_status") == ProductReturn.Status.COMPLETED
        if not is_owner and (completing or any(f in data for f in OWNER_ONLY_FIELDS)):
            raise PermissionDenied("Only the product owner can confirm a return.")

        was_completed = product_return.return_status == ProductReturn.Status.COMPLETED
        product_return = serializer.save()
        if completing and not was_completed:
            complete_return(product_return)

        product_return.refresh_from_db()
        return Response(ProductReturnSerializer(product_return).data)

    @action(detail=True, methods=["post"], url_path="damage-assessment", url_name="damage-assessment")
    def damage_assessment(self, request, pk=None):  # type: ignore
        product_return: ProductReturn = self.get_object()  # type: ignore
        if product_return.rental_request.product.owner_id != request.user.id:
            raise PermissionDenied("Only the product owner can assess damage.")

        serializer = DamageAssessmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            assessment = assess_damage(product_return, request.user, **serializer.validated_data)
        except DuplicateAssessmentError as exc:
            raise ValidationError({"non_field_errors": [str(exc)]})

        logger.info("Damage assessment %s created for return %s", assessment.pk, product_return.pk)
        return Response(DamageAssessmentSerializer(assessment).data, status=status.HTTP_201_CREATED)


class IsAssessmentOwner(permissions.BasePermission):
    """Only the owner of the returned product manages its assessment."""

    def has_object_permission(self, request, view, obj: DamageAssessment):  # type: ignore
        return obj.product_return.rental_request.product.owner_id == request.user.id


class DamageAssessmentViewSet(
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = DamageAssessmentSerializer
    permission_classes = [permissions.IsAuthenticated, IsAssessmentOwner]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        return DamageAssessment.objects.select_related(
            "product_return__rental_request__product"
        ).filter(
            Q(product_return__rental_request__customer=user)
            | Q(product_return__rental_request__product__owner=user)
        )

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        assessment: DamageAssessment = self.get_object()  # type: ignore
        serializer = self.get_serializer(assessment, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        assessment = serializer.save()

        if assessment.approved and assessment.estimated_cost > 0:
            apply_damage_assessment(assessment)
        return Response(self.get_serializer(assessment).data)

    @action(detail=True, methods=["post"])
    def photos(self, request, pk=None):  # type: ignore
        assessment: DamageAssessment = self.get_object()  # type: ignore
        serializer = DamagePhotoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        photo = serializer.save(assessment=assessment)
        return Response(DamagePhotoSerializer(photo).data, status=status.HTTP_201_CREATED)
