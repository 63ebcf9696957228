"""Serializers for rentals."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .application.command_handlers import (
    CancelRentalCommand,
    CreateUnitRentalCommand,
    CreateVariantRentalCommand,
    ExtendRentalCommand,
    ReturnRentalCommand,
)
from .models import Rental


class RentalSerializer(serializers.ModelSerializer):
    customer_name = serializers.ReadOnlyField(source="customer.full_name")
    variant_label = serializers.SerializerMethodField()

    class Meta:
        model = Rental
        fields = [
            "id",
            "customer",
            "customer_name",
            "equipment_variant",
            "variant_label",
            "equipment",
            "quantity",
            "booking",
            "start_at",
            "end_at",
            "status",
            "price_total",
            "returned_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_variant_label(self, obj: Rental) -> str | None:
        return str(obj.equipment_variant) if obj.equipment_variant_id else None


class RentalCreateSerializer(serializers.Serializer):
    """Shape validation for POST /rentals/; tenant checks happen in the handler."""

    customer_id = serializers.IntegerField()
    equipment_variant_id = serializers.IntegerField(required=False, allow_null=True)
    equipment_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(required=False, default=1, min_value=1)
    start_at = serializers.DateTimeField()
    end_at = serializers.DateTimeField()
    price_total = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    payment_method = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    status = serializers.CharField(required=False, allow_blank=True)

    def validate_status(self, value: str) -> str:
        if value and value.strip().upper() != Rental.Status.ACTIVE.value:
            raise serializers.ValidationError(f"Cannot create a {value.strip().lower()} rental.")
        return value

    def validate(self, attrs):  # type: ignore
        has_variant = attrs.get("equipment_variant_id") is not None
        has_unit = attrs.get("equipment_id") is not None
        if has_variant == has_unit:
            raise serializers.ValidationError("Provide exactly one of equipment_variant_id or equipment_id.")
        if attrs["end_at"] <= attrs["start_at"]:
            raise serializers.ValidationError({"end_at": "end_at must be after start_at."})
        return attrs

    def to_command(self, business):  # type: ignore
        data = self.validated_data
        if data.get("equipment_variant_id") is not None:
            return CreateVariantRentalCommand(
                business=business,
                customer_id=data["customer_id"],
                equipment_variant_id=data["equipment_variant_id"],
                quantity=data["quantity"],
                start_at=data["start_at"],
                end_at=data["end_at"],
                price_total=data.get("price_total"),
                payment_method=data.get("payment_method"),
            )
        return CreateUnitRentalCommand(
            business=business,
            customer_id=data["customer_id"],
            equipment_id=data["equipment_id"],
            start_at=data["start_at"],
            end_at=data["end_at"],
            price_total=data.get("price_total"),
            payment_method=data.get("payment_method"),
        )


class RentalUpdateSerializer(serializers.Serializer):
    """PATCH body: a new ``end_at`` or a status transition, not both."""

    TRANSITIONS = {
        Rental.Status.RETURNED.value: ReturnRentalCommand,
        Rental.Status.CANCELLED.value: CancelRentalCommand,
    }

    end_at = serializers.DateTimeField(required=False)
    status = serializers.CharField(required=False)

    def validate_status(self, value: str) -> str:
        value = value.strip().upper()
        if value not in self.TRANSITIONS:
            raise serializers.ValidationError(
                f"status must be one of: {', '.join(self.TRANSITIONS)}."
            )
        return value

    def validate(self, attrs):  # type: ignore
        if not attrs:
            raise serializers.ValidationError("No updates provided.")
        if len(attrs) > 1:
            raise serializers.ValidationError("Change end_at and status in separate requests.")
        return attrs

    def to_command(self, business, rental_id):  # type: ignore
        data = self.validated_data
        if "status" in data:
            return self.TRANSITIONS[data["status"]](business=business, rental_id=rental_id)
        return ExtendRentalCommand(business=business, rental_id=rental_id, end_at=data["end_at"])
