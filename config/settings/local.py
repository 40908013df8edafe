from .base import *  # noqa: F403
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#debug
DEBUG = True
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="xq2Vd8m3uYpB9zL4cR7tN1wK6eH0sJ5aF3gT8vM2nQ9bX4pW7kC1yD6rE0uI5oZ",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#allowed-hosts
ALLOWED_HOSTS = ["localhost", "0.0.0.0", "127.0.0.1"]  # noqa: S104

# SECURITY
# ------------------------------------------------------------------------------
JWT_AUTH_COOKIE_SECURE = False

# Your stuff...
# ------------------------------------------------------------------------------
