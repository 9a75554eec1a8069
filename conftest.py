"""
Root pytest configuration for the Django project.

Settings come from config.settings (see pyproject.toml). App-specific
fixtures are defined in each app's tests/conftest.py.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
