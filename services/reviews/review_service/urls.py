"""URL configuration for the review forms service."""
from django.urls import include, path

urlpatterns = [
    path("api/", include("form_templates.urls")),
]
