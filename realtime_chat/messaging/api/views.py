from __future__ import annotations

from asgiref.sync import async_to_sync
from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from realtime_chat.messaging.store import DjangoMessageStore
from realtime_chat.messaging.store import conversation_key
from realtime_chat.realtime.events.messages import build_message_payload
from realtime_chat.realtime.exceptions import InvalidContent
from realtime_chat.realtime.exceptions import PersistenceError
from realtime_chat.realtime.exceptions import UnknownRecipient
from realtime_chat.realtime.socketio import relay
from realtime_chat.users.api.serializers import UserSerializer

from .serializers import SendMessageSerializer

User = get_user_model()


@extend_schema_view(get=extend_schema(tags=["Messages"]))
class SidebarUsersView(APIView):
    """Every user except the caller."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        users = User.objects.filter(is_active=True).exclude(pk=request.user.pk).order_by("name", "id")
        return Response(UserSerializer(users, many=True).data)


@extend_schema_view(get=extend_schema(tags=["Messages"]))
class ConversationView(APIView):
    """History of the caller's conversation with ``user_id``, in send order.

    This is also how offline recipients receive messages that were never
    pushed to them live.
    """

    permission_classes = [IsAuthenticated]
    store = DjangoMessageStore()

    def get(self, request, user_id: int):
        get_object_or_404(User, pk=user_id)
        messages = self.store.fetch_sync(conversation_key(request.user.pk, user_id))
        return Response([build_message_payload(m) for m in messages])


@extend_schema_view(post=extend_schema(tags=["Messages"], request=SendMessageSerializer))
class SendMessageView(APIView):
    """REST entry point to the same persist-then-push relay the socket uses."""

    permission_classes = [IsAuthenticated]

    def post(self, request, user_id: int):
        serializer = SendMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            message = async_to_sync(relay.send)(
                request.user.pk,
                user_id,
                serializer.validated_data["text"],
                serializer.validated_data["image"],
            )
        except InvalidContent as exc:
            return Response(
                {"detail": "Invalid message content.", "code": exc.reason},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except UnknownRecipient:
            return Response(
                {"detail": "Recipient not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except PersistenceError:
            return Response(
                {"detail": "Message was not sent, please retry."},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response(build_message_payload(message), status=status.HTTP_201_CREATED)
