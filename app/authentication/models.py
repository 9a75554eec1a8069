"""
Authentication models.

This module defines the account model shared by both sides of a paid
session:
- User: Email-login account, either a seeker (pays for sessions) or a
  host (earns from sessions and owns a wallet)

Related files:
    - managers.py: Custom user manager for email-based creation

Security:
    - User passwords hashed with Django's PBKDF2
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """Which side of a session an account acts on."""

    SEEKER = "seeker", "Seeker"
    HOST = "host", "Host"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        role: Seeker or host; only hosts can receive session earnings
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin and run settlements
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        host = User.objects.create_user(
            email='host@example.com',
            password='securepassword',
            role=UserRole.HOST,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    role = models.CharField(
        max_length=10,
        choices=UserRole.choices,
        default=UserRole.SEEKER,
        db_index=True,
        help_text="Seeker pays for sessions, host earns from them",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        """Return the user's email as string representation."""
        return self.email

    @property
    def is_host(self) -> bool:
        """Check if this account can host sessions."""
        return self.role == UserRole.HOST
