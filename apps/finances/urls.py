"""URL routing for recorded payments (read-only)."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter  # type: ignore

from .views import PaymentViewSet

router = DefaultRouter()
router.register(r"", PaymentViewSet, basename="payment")

urlpatterns = router.urls
