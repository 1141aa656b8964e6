"""Route registration for the template store."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import BusinessViewSet, FormTemplateViewSet, health, public_template

router = DefaultRouter()
router.register("businesses", BusinessViewSet, basename="business")
router.register("form-templates", FormTemplateViewSet, basename="form-template")

urlpatterns = [
    path("healthz/", health, name="form-template-health"),
    path(
        "form-templates/public/<int:business_id>/",
        public_template,
        name="form-template-public",
    ),
    path("", include(router.urls)),
]
