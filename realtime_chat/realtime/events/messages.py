from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:  # import for type checking only
    from realtime_chat.messaging.store import ChatMessage


def build_message_payload(message: ChatMessage) -> dict[str, Any]:
    """Wire shape shared by live pushes and REST history.

    ``id`` is the message uid; receivers deduplicate on it.
    """

    return {
        "id": str(message.uid),
        "senderId": message.sender_id,
        "receiverId": message.receiver_id,
        "text": message.text,
        "image": message.image,
        "createdAt": message.created_at.isoformat(),
    }
