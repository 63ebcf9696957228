"""URL routing for rentals."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter  # type: ignore

from .views import RentalViewSet

router = DefaultRouter()
router.register(r"", RentalViewSet, basename="rental")

urlpatterns = router.urls
