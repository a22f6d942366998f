# backend/settings/__init__.py
"""
Settings modules for the ledger service. Pick one with DJANGO_SETTINGS_MODULE:
- backend.settings.dev   (local: DEBUG, verbose accounting logs)
- backend.settings.test  (pytest: in-memory sqlite, no throttles)
- backend.settings.prod  (Postgres, whitenoise, hardened cookies)

Nothing is imported here; the package itself is not a settings module.
"""
