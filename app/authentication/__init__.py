"""
Authentication application.

Provides the email-login User model shared by seekers and hosts.

Usage:
    from authentication.models import User, UserRole
"""
