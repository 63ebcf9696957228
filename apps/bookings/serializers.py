"""Serializers for bookings.

Write serializers only check the request shape and build a command;
tenant references and capacity are checked by the command handlers.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from shared.domain.exceptions import StateError

from .application.command_handlers import (
    CancelBookingCommand,
    CheckInBookingCommand,
    CompleteBookingCommand,
    CreateBookingCommand,
    CreateLessonBookingCommand,
    MarkNoShowCommand,
    UpdateBookingCommand,
)
from .models import Booking, BookingEquipmentAllocation


class BookingEquipmentAllocationSerializer(serializers.ModelSerializer):
    variant_label = serializers.SerializerMethodField()

    class Meta:
        model = BookingEquipmentAllocation
        fields = ["id", "equipment_variant", "variant_label", "quantity", "rental"]
        read_only_fields = fields

    def get_variant_label(self, obj: BookingEquipmentAllocation) -> str:
        return str(obj.equipment_variant)


class BookingSerializer(serializers.ModelSerializer):
    customer_name = serializers.ReadOnlyField(source="customer.full_name")
    lesson_title = serializers.ReadOnlyField(source="lesson.title")
    instructor_name = serializers.ReadOnlyField(source="instructor.full_name")
    allocations = BookingEquipmentAllocationSerializer(many=True, read_only=True)
    rentals = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "customer",
            "customer_name",
            "lesson",
            "lesson_title",
            "instructor",
            "instructor_name",
            "start_at",
            "end_at",
            "participants",
            "status",
            "notes",
            "allocations",
            "rentals",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AllocationInputSerializer(serializers.Serializer):
    equipment_variant_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class BookingCreateSerializer(serializers.Serializer):
    """
    POST /bookings/

    With ``equipment_allocations`` the request books a lesson (instructor,
    equipment and payment); without, a plain booking.
    """

    customer_id = serializers.IntegerField()
    lesson_id = serializers.IntegerField(required=False, allow_null=True)
    instructor_id = serializers.IntegerField(required=False, allow_null=True)
    participants = serializers.IntegerField(required=False, default=1)
    start_at = serializers.DateTimeField()
    end_at = serializers.DateTimeField(required=False, allow_null=True)
    equipment_allocations = AllocationInputSerializer(many=True, required=False)
    payment_method = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    status = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):  # type: ignore
        if attrs.get("equipment_allocations"):
            if attrs.get("lesson_id") is None:
                raise serializers.ValidationError({"lesson_id": "lesson_id is required for lesson bookings."})
        elif attrs.get("end_at") is None:
            raise serializers.ValidationError({"end_at": "end_at is required."})
        if attrs.get("end_at") is not None and attrs["end_at"] <= attrs["start_at"]:
            raise serializers.ValidationError({"end_at": "end_at must be after start_at."})
        return attrs

    def to_command(self, business):  # type: ignore
        data = self.validated_data
        if data.get("equipment_allocations"):
            if data.get("status") and data["status"].strip().upper() != Booking.Status.BOOKED.value:
                raise serializers.ValidationError({"status": "Bookings are created with status BOOKED."})
            return CreateLessonBookingCommand(
                business=business,
                customer_id=data["customer_id"],
                lesson_id=data["lesson_id"],
                instructor_id=data.get("instructor_id"),
                participants=data["participants"],
                start_at=data["start_at"],
                end_at=data.get("end_at"),
                equipment_allocations=[dict(item) for item in data["equipment_allocations"]],
                payment_method=data.get("payment_method"),
                notes=data.get("notes", ""),
            )
        return CreateBookingCommand(
            business=business,
            customer_id=data["customer_id"],
            lesson_id=data.get("lesson_id"),
            instructor_id=data.get("instructor_id"),
            participants=data["participants"],
            start_at=data["start_at"],
            end_at=data["end_at"],
            status=data.get("status"),
            notes=data.get("notes", ""),
        )


class BookingCheckInSerializer(serializers.Serializer):
    equipment_category_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(required=False, allow_null=True, min_value=1)

    def to_command(self, business, booking_id):  # type: ignore
        return CheckInBookingCommand(
            business=business,
            booking_id=booking_id,
            equipment_category_id=self.validated_data.get("equipment_category_id"),
            quantity=self.validated_data.get("quantity"),
        )


class BookingUpdateSerializer(serializers.Serializer):
    """PATCH body: field edits, or a ``status`` transition on its own."""

    TRANSITIONS = {
        Booking.Status.CHECKED_IN.value: CheckInBookingCommand,
        Booking.Status.COMPLETED.value: CompleteBookingCommand,
        Booking.Status.CANCELLED.value: CancelBookingCommand,
        Booking.Status.NO_SHOW.value: MarkNoShowCommand,
    }

    start_at = serializers.DateTimeField(required=False)
    end_at = serializers.DateTimeField(required=False)
    participants = serializers.IntegerField(required=False)
    customer_id = serializers.IntegerField(required=False)
    lesson_id = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.CharField(required=False)

    def validate_status(self, value: str) -> str:
        value = value.strip().upper()
        if value not in Booking.Status.__members__:
            raise serializers.ValidationError(
                f"status must be one of: {', '.join(s.value for s in Booking.Status)}"
            )
        return value

    def validate(self, attrs):  # type: ignore
        if not attrs:
            raise serializers.ValidationError("No updates provided.")
        if "status" in attrs and len(attrs) > 1:
            raise serializers.ValidationError("Change status in a separate request.")
        return attrs

    def to_command(self, business, booking_id):  # type: ignore
        data = dict(self.validated_data)
        if "status" in data:
            if data["status"] == Booking.Status.BOOKED.value:
                raise StateError("Cannot transition back to BOOKED.", reason="invalid_transition")
            return self.TRANSITIONS[data["status"]](business=business, booking_id=booking_id)
        return UpdateBookingCommand(business=business, booking_id=booking_id, **data)
