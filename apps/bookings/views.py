"""API views for bookings.

Every write goes through the booking command handlers on the message
bus. Bookings are never deleted; cancel them instead.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.api.tenancy import TenantScopedViewMixin
from shared.application.message_bus import message_bus

from .application.command_handlers import CancelBookingCommand, CompleteBookingCommand, MarkNoShowCommand
from .models import Booking
from .filters import BookingFilterSet
from .serializers import (
    BookingCheckInSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingUpdateSerializer,
)


class BookingViewSet(
    TenantScopedViewMixin,
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Viewset for creating bookings and driving their lifecycle."""

    queryset = (
        Booking.objects.select_related("customer", "lesson", "instructor")
        .prefetch_related("allocations__equipment_variant__category", "rentals")
        .all()
    )
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_class = BookingFilterSet
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "partial_update":
            return BookingUpdateSerializer
        if self.action == "check_in":
            return BookingCheckInSerializer
        return BookingSerializer

    def _render(self, booking: Booking, status_code=status.HTTP_200_OK) -> Response:
        booking = self.get_queryset().get(pk=booking.pk)
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data, status=status_code)

    def _dispatch(self, command, status_code=status.HTTP_200_OK) -> Response:  # type: ignore
        booking = message_bus.handle_command(command)
        return self._render(booking, status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._dispatch(serializer.to_command(self.business), status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        booking = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._dispatch(serializer.to_command(self.business, booking.pk))

    def destroy(self, request, *args, **kwargs):  # type: ignore
        return Response(
            {
                "error": {
                    "reason": "method_not_allowed",
                    "message": "Bookings cannot be deleted. Cancel them instead.",
                }
            },
            status=status.HTTP_405_METHOD_NOT_ALLOWED,
        )

    @action(detail=True, methods=["post"], url_path="check-in", url_name="check-in")
    def check_in(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._dispatch(serializer.to_command(self.business, booking.pk))

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        return self._dispatch(CompleteBookingCommand(business=self.business, booking_id=booking.pk))

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        return self._dispatch(CancelBookingCommand(business=self.business, booking_id=booking.pk))

    @action(detail=True, methods=["post"], url_path="no-show", url_name="no-show")
    def no_show(self, request, pk=None):  # type: ignore
        booking = self.get_object()
        return self._dispatch(MarkNoShowCommand(business=self.business, booking_id=booking.pk))
