"""
Project-wide pytest configuration.

Provides test-only settings tweaks and auto-marks tests as unit,
integration or e2e from their filename. App-specific fixtures live in
each app's tests/conftest.py.
"""

import pytest


def pytest_configure():
    """Adjust settings before tests run."""
    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


@pytest.fixture(autouse=True)
def locmem_cache(settings):
    """
    Run every test against an in-process cache.

    Redis is only reached through payments.locks, which tests patch
    with the mock_redis fixture.
    """
    settings.CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "escrow-tests",
        }
    }
    from django.core.cache import cache

    cache.clear()


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full money-flow journeys)
    - test_views.py, test_*_service.py, test_tasks.py, etc. → integration
    - test_models.py, test_penalty.py, test_signatures.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_handlers.py",
        "test_tasks.py",
        "test_workers.py",
        "_service.py",
        "_ledger.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_managers.py",
        "test_penalty.py",
        "test_signatures.py",
        "test_locks.py",
        "test_exceptions.py",
        "test_adapters.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
