"""API views for rentals.

Writes are dispatched to the rental command handlers through the
message bus; rentals are never deleted.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.api.tenancy import TenantScopedViewMixin
from shared.application.message_bus import message_bus

from .application.command_handlers import CancelRentalCommand, ReturnRentalCommand
from .filters import RentalFilterSet
from .models import Rental
from .repositories import RentalRepository
from .serializers import RentalCreateSerializer, RentalSerializer, RentalUpdateSerializer


class RentalViewSet(
    TenantScopedViewMixin,
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Rental.objects.select_related("customer", "equipment_variant__category", "equipment").all()
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_class = RentalFilterSet
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return RentalCreateSerializer
        if self.action == "partial_update":
            return RentalUpdateSerializer
        return RentalSerializer

    def _render(self, rental: Rental, status_code=status.HTTP_200_OK) -> Response:
        rental = RentalRepository().get(self.business, rental.pk)
        return Response(RentalSerializer(rental, context=self.get_serializer_context()).data, status=status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rental = message_bus.handle_command(serializer.to_command(self.business))
        return self._render(rental, status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        rental = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rental = message_bus.handle_command(serializer.to_command(self.business, rental.pk))
        return self._render(rental)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        return Response(
            {"error": {"reason": "method_not_allowed", "message": "Rentals cannot be deleted."}},
            status=status.HTTP_405_METHOD_NOT_ALLOWED,
        )

    @action(detail=True, methods=["post"], url_path="return", url_name="return")
    def return_rental(self, request, pk=None):  # type: ignore
        rental = self.get_object()
        rental = message_bus.handle_command(ReturnRentalCommand(business=self.business, rental_id=rental.pk))
        return self._render(rental)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        rental = self.get_object()
        rental = message_bus.handle_command(CancelRentalCommand(business=self.business, rental_id=rental.pk))
        return self._render(rental)
