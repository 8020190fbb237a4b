"""Domain value objects and pure domain functions."""

from statussync.domain.value_objects.status_text import (
    MAX_STATUS_LENGTH,
    OWN_STATUS_PATTERN,
    STATUS_EMOJI,
    can_overwrite,
    emoji_for,
    format_status,
)

__all__ = [
    "MAX_STATUS_LENGTH",
    "OWN_STATUS_PATTERN",
    "STATUS_EMOJI",
    "can_overwrite",
    "emoji_for",
    "format_status",
]
