"""WSGI config for the review forms service."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "review_service.settings")

application = get_wsgi_application()
