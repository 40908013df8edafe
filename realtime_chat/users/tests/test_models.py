import pytest

from realtime_chat.users.tests.factories import create_user

pytestmark = pytest.mark.django_db


def test_user_str_prefers_full_name():
    assert str(create_user("amy@example.com", name="Amy Pond")) == "Amy Pond"


def test_user_str_falls_back_to_email(django_user_model):
    user = django_user_model.objects.create_user(
        username="rory@example.com",
        email="rory@example.com",
        password="pass1234",  # noqa: S106
    )

    assert str(user) == "rory@example.com"
