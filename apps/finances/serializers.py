"""Serializers for the finance domain (payments)."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ["id", "booking", "rental", "status", "method", "amount", "paid_at", "created_at"]
        read_only_fields = fields
