from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth import authenticate
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.decorators import authentication_classes
from rest_framework.decorators import permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken

from .serializers import LoginSerializer
from .serializers import ProfileUpdateSerializer
from .serializers import SignupSerializer
from .serializers import UserSerializer

if TYPE_CHECKING:  # pragma: no cover - typing only
    from datetime import timedelta


def _set_cookie(
    response: Response,
    name: str,
    value: str,
    max_age: int | None,
) -> None:
    if not value:
        return
    cookie_kwargs = {
        "httponly": True,
        "secure": getattr(settings, "JWT_AUTH_COOKIE_SECURE", not settings.DEBUG),
        "samesite": getattr(settings, "JWT_AUTH_COOKIE_SAMESITE", "Lax"),
        "path": "/",
    }
    if max_age is not None:
        cookie_kwargs["max_age"] = max_age
    response.set_cookie(name, value, **cookie_kwargs)


def set_jwt_cookies(response: Response, user) -> None:
    """Issue a token pair for ``user`` as HttpOnly cookies."""

    refresh = RefreshToken.for_user(user)
    access_lifetime: timedelta = settings.SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"]
    refresh_lifetime: timedelta = settings.SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"]

    access_cookie = getattr(settings, "JWT_AUTH_COOKIE", "access_token")
    refresh_cookie = getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token")

    _set_cookie(
        response,
        access_cookie,
        str(refresh.access_token),
        int(access_lifetime.total_seconds()),
    )
    _set_cookie(
        response,
        refresh_cookie,
        str(refresh),
        int(refresh_lifetime.total_seconds()),
    )


def clear_jwt_cookies(response: Response) -> None:
    response.delete_cookie(getattr(settings, "JWT_AUTH_COOKIE", "access_token"), path="/")
    response.delete_cookie(
        getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token"),
        path="/",
    )


@extend_schema(tags=["Authentication"], request=SignupSerializer, responses=UserSerializer)
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def signup(request):
    serializer = SignupSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    response = Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
    set_jwt_cookies(response, user)
    return response


@extend_schema(tags=["Authentication"], request=LoginSerializer, responses=UserSerializer)
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def login(request):
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = authenticate(
        request,
        email=serializer.validated_data["email"],
        password=serializer.validated_data["password"],
    )
    if user is None:
        return Response(
            {"detail": "Invalid credentials"},
            status=status.HTTP_400_BAD_REQUEST,
        )
    response = Response(UserSerializer(user).data, status=status.HTTP_200_OK)
    set_jwt_cookies(response, user)
    return response


@extend_schema(tags=["Authentication"], request=None, responses=None)
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def logout(request):
    response = Response({"detail": "Logged out successfully"}, status=status.HTTP_200_OK)
    clear_jwt_cookies(response)
    return response


@extend_schema(tags=["Authentication"], responses=UserSerializer)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def check_auth(request):
    return Response(UserSerializer(request.user).data, status=status.HTTP_200_OK)


@extend_schema(tags=["Users"], request=ProfileUpdateSerializer, responses=UserSerializer)
@api_view(["PUT"])
@permission_classes([IsAuthenticated])
def update_profile(request):
    serializer = ProfileUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = request.user
    user.profile_pic = serializer.validated_data["profile_pic"]
    user.save(update_fields=["profile_pic", "updated_at"])
    return Response(UserSerializer(user).data, status=status.HTTP_200_OK)
