"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User model and role tests
- test_managers.py: UserManager tests

Usage:
    pytest authentication/tests/
"""
