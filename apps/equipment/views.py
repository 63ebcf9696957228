"""API views for the equipment catalogue and availability."""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from shared.api.tenancy import TenantScopedViewMixin, resolve_business

from .filters import EquipmentVariantFilterSet
from .models import EquipmentCategory, EquipmentVariant
from .serializers import (
    AvailabilityQuerySerializer,
    EquipmentCategorySerializer,
    EquipmentVariantSerializer,
    VariantAvailabilitySerializer,
)
from .services import availability, availability_at


class EquipmentCategoryViewSet(TenantScopedViewMixin, viewsets.ModelViewSet):
    queryset = EquipmentCategory.objects.all()
    serializer_class = EquipmentCategorySerializer
    permission_classes = [permissions.AllowAny]

    def destroy(self, request, *args, **kwargs):  # type: ignore
        category = self.get_object()
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class EquipmentVariantViewSet(TenantScopedViewMixin, viewsets.ModelViewSet):
    """Variants with their live availability embedded."""

    queryset = EquipmentVariant.objects.select_related("category").all()
    serializer_class = EquipmentVariantSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_class = EquipmentVariantFilterSet

    def list(self, request, *args, **kwargs):  # type: ignore
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        variants = list(page if page is not None else queryset)
        context = self.get_serializer_context()
        context["ledger"] = availability_at(self.business, variants, timezone.now())
        serializer = self.get_serializer_class()(variants, many=True, context=context)
        if page is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)

    def retrieve(self, request, *args, **kwargs):  # type: ignore
        variant = self.get_object()
        context = self.get_serializer_context()
        context["ledger"] = availability_at(self.business, [variant], timezone.now())
        return Response(self.get_serializer_class()(variant, context=context).data)


class AvailabilityView(APIView):
    """GET availability for variants over a window (defaults to now)."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):  # type: ignore
        business = resolve_business(request)
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        rows = availability(
            business,
            query.validated_data["variant_ids"],
            query.validated_data["start_at"],
            query.validated_data["end_at"],
        )
        return Response(
            {
                "start_at": query.validated_data["start_at"],
                "end_at": query.validated_data["end_at"],
                "data": VariantAvailabilitySerializer([row.to_dict() for row in rows], many=True).data,
            }
        )
