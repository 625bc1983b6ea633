"""VidTube — user accounts for a video platform.

Registration, JWT sessions with single-use refresh tokens, profiles,
avatar/cover uploads, and channel read models (subscriber counts,
watch history).
"""

__version__ = "0.1.0"
