from typing import Optional

from rushr_messaging import config
from rushr_messaging.models.api.messages import MessageResponse
from rushr_messaging.models.enums import MessageKind

DELETED_PREVIEW = "Message deleted"


def build_preview(
    message: Optional[MessageResponse], max_chars: Optional[int] = None
) -> Optional[str]:
    """One-line text shown for a message in the directory and notifications."""
    if message is None:
        return None
    if max_chars is None:
        max_chars = config.PREVIEW_MAX_CHARS

    if message.deleted:
        text = DELETED_PREVIEW
    elif message.kind == MessageKind.OFFER and message.offer is not None:
        text = f"Offer: {message.offer.title}"
    elif message.kind == MessageKind.FILE and not (message.content or "").strip():
        count = len(message.attachments)
        text = f"Sent {count} attachment{'s' if count != 1 else ''}"
    else:
        text = " ".join((message.content or "").split())

    if len(text) > max_chars:
        text = text[: max_chars - 1].rstrip() + "…"
    return text
