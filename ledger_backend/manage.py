"""
PATH: manage.py

Management entrypoint for the ledger service (seed_chart_of_accounts,
seed_posting_rules, validate_posting_rules, recalculate_balances, close_period).

Settings selection when DJANGO_SETTINGS_MODULE is unset or names the bare
"backend.settings" package:
- `manage.py test` -> backend.settings.test
- anything else    -> backend.settings.dev
Production sets backend.settings.prod explicitly and is left alone.
"""

from __future__ import annotations

import os
import sys


def _ensure_settings_module() -> None:
    current = (os.environ.get("DJANGO_SETTINGS_MODULE") or "").strip()

    # If CI (or anyone) points to the package, Django won't load INSTALLED_APPS.
    if not current or current == "backend.settings":
        default = "backend.settings.test" if "test" in sys.argv else "backend.settings.dev"
        os.environ["DJANGO_SETTINGS_MODULE"] = default


def main() -> None:
    _ensure_settings_module()

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
