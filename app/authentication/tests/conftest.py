"""
Test configuration and fixtures for authentication tests.
"""

import pytest

from authentication.models import User
from authentication.tests.factories import HostFactory, UserFactory


@pytest.fixture
def user(db):
    """Create a basic seeker."""
    return UserFactory()


@pytest.fixture
def host(db):
    """Create a host."""
    return HostFactory()


@pytest.fixture
def superuser(db):
    """Create a superuser with admin privileges."""
    return User.objects.create_superuser(
        email="admin@example.com",
        password="AdminPass123!",
    )
