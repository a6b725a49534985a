"""WSGI config for the hostel portal project."""
from __future__ import annotations

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "hostelportal.settings")

application = get_wsgi_application()
