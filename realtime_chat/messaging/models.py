import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q


class Message(models.Model):
    """A direct message. Immutable once stored."""

    uid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_messages",
    )
    text = models.TextField(blank=True, default="")
    image = models.URLField(blank=True, default="", max_length=500)
    created_at = models.DateTimeField()

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["sender", "receiver", "created_at"],
                name="message_pair_created_idx",
            ),
        ]

    def __str__(self):
        return f"{self.sender_id} -> {self.receiver_id} ({self.uid})"

    @classmethod
    def between(cls, user_a_id: int, user_b_id: int) -> models.QuerySet["Message"]:
        return cls.objects.filter(
            Q(sender_id=user_a_id, receiver_id=user_b_id)
            | Q(sender_id=user_b_id, receiver_id=user_a_id),
        ).order_by("created_at", "id")
