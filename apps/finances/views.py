"""Read-only API over recorded payments.

Payments are written only by the reservation coordinator; this
viewset lists them for the tenant.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, viewsets  # type: ignore

from shared.api.tenancy import TenantScopedViewMixin

from .models import Payment
from .serializers import PaymentSerializer


class PaymentViewSet(TenantScopedViewMixin, viewsets.ReadOnlyModelViewSet):
    queryset = Payment.objects.all()
    serializer_class = PaymentSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["booking", "rental", "method", "status"]
