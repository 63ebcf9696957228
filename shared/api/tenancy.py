"""Tenant resolution at the HTTP edge.

The active business is resolved once per request from the
``X-Business-Id`` header and passed explicitly into every command.
Nothing below the view layer reads it from ambient state.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore

from shared.domain.exceptions import NotFoundError, ValidationError

TENANT_HEADER = "HTTP_X_BUSINESS_ID"


def resolve_business(request):  # type: ignore
    """Return the Business addressed by the request."""

    from apps.businesses.models import Business

    raw = (request.META.get(TENANT_HEADER) or "").strip()
    if not raw and settings.DEBUG:
        raw = str(getattr(settings, "DEFAULT_BUSINESS_ID", "") or "").strip()
    if not raw:
        raise ValidationError(
            "Missing tenant. Provide X-Business-Id header.",
            reason="missing_tenant",
        )
    try:
        business_id = int(raw)
    except ValueError:
        raise ValidationError("X-Business-Id must be an integer.", reason="invalid_tenant")

    business = Business.objects.filter(pk=business_id, is_active=True).first()
    if business is None:
        raise NotFoundError("Business not found.", reason="tenant_not_found", status_code=400)
    return business


class TenantScopedViewMixin:
    """Resolves the request's business once and scopes querysets to it."""

    tenant_field = "business"

    @property
    def business(self):  # type: ignore
        if not hasattr(self, "_business"):
            self._business = resolve_business(self.request)
        return self._business

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if getattr(self, "swagger_fake_view", False):
            return qs.none()
        return qs.filter(**{self.tenant_field: self.business})

    def get_serializer_context(self):  # type: ignore
        context = super().get_serializer_context()
        if not getattr(self, "swagger_fake_view", False):
            context["business"] = self.business
        return context
