"""Serializers for the equipment catalogue and availability queries."""

from __future__ import annotations

from django.utils import timezone  # type: ignore
from rest_framework import serializers  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import ConflictError
from shared.domain.value_objects import TimeWindow

from .models import EquipmentCategory, EquipmentVariant
from .repositories import EquipmentVariantRepository
from .services import ensure_total_covers_commitments


class EquipmentCategorySerializer(serializers.ModelSerializer):
    variants_count = serializers.SerializerMethodField()

    class Meta:
        model = EquipmentCategory
        fields = ["id", "name", "track_sizes", "variants_count", "created_at", "updated_at"]
        read_only_fields = ["id", "variants_count", "created_at", "updated_at"]

    def get_variants_count(self, obj: EquipmentCategory) -> int:
        return obj.variants.count()

    def validate_name(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("name cannot be empty.")
        business = self.context["business"]
        qs = EquipmentCategory.objects.filter(business=business, name=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise ConflictError("A category with this name already exists.", reason="duplicate_category")
        return value

    def create(self, validated_data):  # type: ignore
        return EquipmentCategory.objects.create(business=self.context["business"], **validated_data)


class EquipmentVariantSerializer(serializers.ModelSerializer):
    category_name = serializers.ReadOnlyField(source="category.name")
    in_use = serializers.SerializerMethodField()
    available_now = serializers.SerializerMethodField()
    low_stock = serializers.SerializerMethodField()

    class Meta:
        model = EquipmentVariant
        fields = [
            "id",
            "category",
            "category_name",
            "label",
            "total_quantity",
            "low_stock_threshold",
            "is_active",
            "in_use",
            "available_now",
            "low_stock",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "category_name", "in_use", "available_now", "low_stock", "created_at", "updated_at"]
        # uniqueness of (category, label) is checked in validate() and reported as a conflict
        validators = []

    def get_fields(self):  # type: ignore
        fields = super().get_fields()
        business = self.context.get("business")
        if business is not None:
            fields["category"].queryset = EquipmentCategory.objects.filter(business=business)
        return fields

    def _ledger_row(self, obj: EquipmentVariant):  # type: ignore
        return self.context.get("ledger", {}).get(obj.pk)

    def get_in_use(self, obj: EquipmentVariant) -> int | None:
        row = self._ledger_row(obj)
        return row.in_use if row else None

    def get_available_now(self, obj: EquipmentVariant) -> int | None:
        row = self._ledger_row(obj)
        return row.available_now if row else None

    def get_low_stock(self, obj: EquipmentVariant) -> bool | None:
        row = self._ledger_row(obj)
        return row.low_stock if row else None

    def validate_label(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("label is required.")
        return value

    def validate(self, attrs):  # type: ignore
        category = attrs.get("category") or getattr(self.instance, "category", None)
        label = attrs.get("label") or getattr(self.instance, "label", None)
        qs = EquipmentVariant.objects.filter(category=category, label=label)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise ConflictError(
                f'Variant "{label}" already exists in this category.',
                reason="duplicate_variant",
            )
        return attrs

    def create(self, validated_data):  # type: ignore
        return EquipmentVariant.objects.create(business=self.context["business"], **validated_data)

    def update(self, instance, validated_data):  # type: ignore
        business = self.context["business"]
        with DjangoUnitOfWork():
            variant = EquipmentVariantRepository().lock_many(business, [instance.pk])[instance.pk]
            new_total = validated_data.get("total_quantity", variant.total_quantity)
            if new_total < variant.total_quantity:
                ensure_total_covers_commitments(business, variant, new_total, timezone.now())
            return super().update(variant, validated_data)


class AvailabilityQuerySerializer(serializers.Serializer):
    """Query parameters of the availability endpoint."""

    variant_ids = serializers.CharField(help_text="Comma separated variant ids.")
    start_at = serializers.DateTimeField(required=False)
    end_at = serializers.DateTimeField(required=False)

    def validate_variant_ids(self, value: str) -> list[int]:
        try:
            ids = [int(part) for part in value.replace(" ", "").split(",") if part]
        except ValueError:
            raise serializers.ValidationError("variant_ids must be a comma separated list of integers.")
        if not ids:
            raise serializers.ValidationError("At least one variant id is required.")
        return ids

    def validate(self, attrs):  # type: ignore
        start_at = attrs.get("start_at")
        end_at = attrs.get("end_at")
        if (start_at is None) != (end_at is None):
            raise serializers.ValidationError("start_at and end_at must be provided together.")
        if start_at is None:
            window = TimeWindow.instant(timezone.now())
            attrs["start_at"], attrs["end_at"] = window.start_at, window.end_at
        elif end_at <= start_at:
            raise serializers.ValidationError("end_at must be after start_at.")
        return attrs


class VariantAvailabilitySerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    label = serializers.CharField()
    category = serializers.CharField()
    total_quantity = serializers.IntegerField()
    in_use = serializers.IntegerField()
    available_now = serializers.IntegerField()
    low_stock = serializers.BooleanField()
