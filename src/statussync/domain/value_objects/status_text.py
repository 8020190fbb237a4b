"""Status text formatting and the overwrite guard.

Hey future me - these two are PURE functions and the heart of "what does Slack show".

format_status() turns a PlaybackSnapshot into the text we want to set:
    track    -> Listening to "Song" by A, B on Spotify
    episode  -> Listening to "Episode" (Show) by Publisher on Spotify
    too long -> Listening to "Song" on Spotify
    nothing  -> "" (means: clear the status)

can_overwrite() decides if we're allowed to touch the user's current Slack status.
We can't tell "status we wrote" from "status the user wrote" except by fingerprint:
our emoji plus our text shape. Everything else is hands-off. A manual status that
happens to look like ours ("Listening to X on Spotify" typed by hand) WILL be claimed
- that's a known false positive and we live with it.
"""

import re

from statussync.domain.entities import PlaybackKind, PlaybackSnapshot, SlackProfile

# Slack rejects status_text longer than this
MAX_STATUS_LENGTH = 100

STATUS_EMOJI = ":musical_note:"

# Loose on purpose: the minimal fallback is the vaguest shape we produce, and it is
# a substring pattern of the two longer shapes too.
OWN_STATUS_PATTERN = re.compile(r"Listening to .* on Spotify")

_ELLIPSIS = "..."


def _minimal(title: str) -> str:
    text = f'Listening to "{title}" on Spotify'
    if len(text) <= MAX_STATUS_LENGTH:
        return text
    # Titles this long are rare but real (classical works); cut the title, not the frame.
    overflow = len(text) - MAX_STATUS_LENGTH + len(_ELLIPSIS)
    return f'Listening to "{title[:-overflow].rstrip()}{_ELLIPSIS}" on Spotify'


def _credited_artists(title: str, artists: tuple[str, ...]) -> list[str]:
    # "Song (feat. X)" by "Y, X" -> X is already in the title, drop it.
    # Same for credits like "A feat. Song" that repeat the title.
    return [
        name
        for name in artists
        if name and name not in title and title not in name
    ]


def format_status(snapshot: PlaybackSnapshot | None) -> str:
    """Map a playback snapshot to a Slack status text.

    Args:
        snapshot: Current playback state, or None if unknown

    Returns:
        Status text of at most MAX_STATUS_LENGTH characters, or "" to clear
    """
    if snapshot is None or not snapshot.is_playing or not snapshot.title:
        return ""

    if snapshot.kind == PlaybackKind.TRACK:
        artists = _credited_artists(snapshot.title, snapshot.artists)
        if not artists:
            return _minimal(snapshot.title)
        text = (
            f'Listening to "{snapshot.title}" by {", ".join(artists)} on Spotify'
        )
    elif snapshot.kind == PlaybackKind.EPISODE:
        if snapshot.show is None:
            return _minimal(snapshot.title)
        text = (
            f'Listening to "{snapshot.title}" ({snapshot.show.name}) '
            f"by {snapshot.show.publisher} on Spotify"
        )
    else:
        return ""

    if len(text) > MAX_STATUS_LENGTH:
        return _minimal(snapshot.title)
    return text


def can_overwrite(profile: SlackProfile) -> bool:
    """Decide whether the engine may replace the user's current Slack status.

    Args:
        profile: The live status fields read from Slack

    Returns:
        True if the status is blank or was written by us
    """
    # Expiring statuses come from the user or a calendar integration
    if profile.status_expiration != 0:
        return False
    if profile.status_emoji and profile.status_emoji != STATUS_EMOJI:
        return False
    if profile.status_text and not OWN_STATUS_PATTERN.search(profile.status_text):
        return False
    return True


def emoji_for(status_text: str) -> str:
    """Emoji to send along with a status text (cleared together with the text)."""
    return STATUS_EMOJI if status_text else ""
