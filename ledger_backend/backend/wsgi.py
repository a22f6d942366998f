# backend/wsgi.py
"""
WSGI entrypoint for the ledger service (gunicorn backend.wsgi).

Deployments set DJANGO_SETTINGS_MODULE=backend.settings.prod; without it
the dev settings load.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings.dev")

application = get_wsgi_application()
