"""URL routing for the equipment domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import AvailabilityView, EquipmentCategoryViewSet, EquipmentVariantViewSet

router = DefaultRouter()
router.register(r"categories", EquipmentCategoryViewSet, basename="equipment-category")
router.register(r"variants", EquipmentVariantViewSet, basename="equipment-variant")

urlpatterns = [
    path("availability/", AvailabilityView.as_view(), name="equipment-availability"),
    path("", include(router.urls)),
]
