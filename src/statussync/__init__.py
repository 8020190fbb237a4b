"""statussync - mirrors Spotify playback into Slack statuses."""

__version__ = "0.1.0"
