from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.db.models import URLField
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    """
    Default custom user model for realtime_chat.

    Users sign up and log in with their email; ``username`` mirrors the email so
    the stock admin and auth tooling keep working.
    """

    # First and last name do not cover name patterns around the globe
    name = CharField(_("Full Name"), blank=True, max_length=255)
    email = EmailField(_("email address"), unique=True)
    first_name = None  # type: ignore[assignment]
    last_name = None  # type: ignore[assignment]
    # Hosted by an external image store; only the URL lives here.
    profile_pic = URLField(_("Profile picture"), blank=True, default="", max_length=500)
    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.name or self.email
