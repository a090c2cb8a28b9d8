#!/usr/bin/env python
"""
Back-office management entrypoint.

Runs with backend.settings.dev unless DJANGO_SETTINGS_MODULE names a
concrete settings module. Domain commands:

    python manage.py seed_products
    python manage.py audit_stock [--strict] [--all]
    python manage.py validate_sale_margins [--from YYYY-MM-DD] [--to YYYY-MM-DD] [--strict]
"""

from __future__ import annotations

import os
import sys


def _settings_module() -> str:
    current = (os.environ.get("DJANGO_SETTINGS_MODULE") or "").strip()
    # "backend.settings" is the bare package and defines no apps.
    if current in ("", "backend.settings"):
        return "backend.settings.dev"
    return current


def main() -> None:
    os.environ["DJANGO_SETTINGS_MODULE"] = _settings_module()

    from django.core.management import execute_from_command_line

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
