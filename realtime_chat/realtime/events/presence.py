from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # import for type checking only
    from realtime_chat.realtime.registry import PresenceSnapshot
    from realtime_chat.realtime.registry import UserIdentity


def build_presence_payload(snapshot: PresenceSnapshot) -> list[UserIdentity]:
    return snapshot.as_list()
