import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from realtime_chat.users.tests.factories import DEFAULT_PASSWORD
from realtime_chat.users.tests.factories import create_user

pytestmark = pytest.mark.django_db

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def test_auth_urls():
    assert reverse("api_v1:auth:signup") == "/api/v1/auth/signup/"
    assert reverse("api_v1:auth:login") == "/api/v1/auth/login/"
    assert reverse("api_v1:auth:logout") == "/api/v1/auth/logout/"
    assert reverse("api_v1:auth:check") == "/api/v1/auth/check/"
    assert reverse("api_v1:auth:update-profile") == "/api/v1/auth/update-profile/"


class TestSignup:
    def test_signup_creates_user_and_sets_cookies(self):
        client = APIClient()

        res = client.post(
            "/api/v1/auth/signup/",
            {"full_name": "Ada Lovelace", "email": "Ada@Example.com", "password": "engine"},
            format="json",
        )

        assert res.status_code == status.HTTP_201_CREATED, res.content
        assert res.data["full_name"] == "Ada Lovelace"
        assert res.data["email"] == "ada@example.com"
        assert res.cookies[ACCESS_COOKIE]["httponly"]
        assert res.cookies[REFRESH_COOKIE].value

    def test_duplicate_email(self):
        create_user("taken@example.com")

        res = APIClient().post(
            "/api/v1/auth/signup/",
            {"full_name": "Someone", "email": "taken@example.com", "password": "secret1"},
            format="json",
        )

        assert res.status_code == status.HTTP_400_BAD_REQUEST
        assert res.data["email"] == ["Email already exists"]

    def test_short_password(self):
        res = APIClient().post(
            "/api/v1/auth/signup/",
            {"full_name": "Shorty", "email": "short@example.com", "password": "abc"},
            format="json",
        )

        assert res.status_code == status.HTTP_400_BAD_REQUEST
        assert "password" in res.data

    def test_blank_name(self):
        res = APIClient().post(
            "/api/v1/auth/signup/",
            {"full_name": "   ", "email": "blank@example.com", "password": "secret1"},
            format="json",
        )

        assert res.status_code == status.HTTP_400_BAD_REQUEST
        assert "full_name" in res.data


class TestLoginLogout:
    def test_login_sets_cookies_that_authenticate_later_calls(self):
        user = create_user("login@example.com")
        client = APIClient()

        res = client.post(
            "/api/v1/auth/login/",
            {"email": "login@example.com", "password": DEFAULT_PASSWORD},
            format="json",
        )
        assert res.status_code == status.HTTP_200_OK
        assert res.data["id"] == user.id

        check = client.get("/api/v1/auth/check/")
        assert check.status_code == status.HTTP_200_OK
        assert check.data["email"] == "login@example.com"

    def test_invalid_credentials(self):
        create_user("login@example.com")

        res = APIClient().post(
            "/api/v1/auth/login/",
            {"email": "login@example.com", "password": "nope-nope"},
            format="json",
        )

        assert res.status_code == status.HTTP_400_BAD_REQUEST
        assert res.data == {"detail": "Invalid credentials"}
        assert ACCESS_COOKIE not in res.cookies

    def test_logout_clears_cookies(self):
        create_user("bye@example.com")
        client = APIClient()
        client.post(
            "/api/v1/auth/login/",
            {"email": "bye@example.com", "password": DEFAULT_PASSWORD},
            format="json",
        )

        res = client.post("/api/v1/auth/logout/")

        assert res.status_code == status.HTTP_200_OK
        assert res.cookies[ACCESS_COOKIE].value == ""
        assert client.get("/api/v1/auth/check/").status_code == status.HTTP_401_UNAUTHORIZED

    def test_check_without_credentials(self):
        res = APIClient().get("/api/v1/auth/check/")

        assert res.status_code == status.HTTP_401_UNAUTHORIZED


class TestUpdateProfile:
    def test_update_profile_picture(self):
        user = create_user("pic@example.com")
        client = APIClient()
        client.force_authenticate(user)

        res = client.put(
            "/api/v1/auth/update-profile/",
            {"profile_pic": "https://cdn.example.com/me.png"},
            format="json",
        )

        assert res.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.profile_pic == "https://cdn.example.com/me.png"
        assert res.data["profile_pic"] == user.profile_pic

    def test_profile_picture_is_required(self):
        client = APIClient()
        client.force_authenticate(create_user("nopic@example.com"))

        res = client.put("/api/v1/auth/update-profile/", {}, format="json")

        assert res.status_code == status.HTTP_400_BAD_REQUEST
