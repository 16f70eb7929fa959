"""Text helpers shared by the formatter and the notification gateways."""

from __future__ import annotations

SMS_SEGMENT_LIMIT = 1_600


def split_message(text: str, limit: int = SMS_SEGMENT_LIMIT) -> list[str]:
    """Split a long message into chunks no longer than *limit*, cutting at newlines."""
    if len(text) <= limit:
        return [text]
    chunks: list[str] = []
    while text:
        if len(text) <= limit:
            chunks.append(text)
            break
        cut = text.rfind("\n", 0, limit)
        if cut == -1:
            cut = limit
        chunks.append(text[:cut])
        text = text[cut:].lstrip("\n")
    return chunks
