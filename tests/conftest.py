"""Pytest configuration shared across test modules."""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "wplinker_tool.settings")
os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret")
os.environ.setdefault("DJANGO_DEBUG", "true")


def pytest_configure(config):
    import django

    django.setup()
